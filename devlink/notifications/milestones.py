"""Milestone thresholds per tracked metric.

A milestone fires only when a count lands exactly on a threshold. A counter
that jumps past a value (9 to 11) never fires that milestone.
"""

from enum import Enum
from typing import Dict, Tuple


class MetricType(str, Enum):
    FOLLOWERS = "followers"
    PROFILE_VIEWS = "profile_views"
    PROJECTS = "projects"
    POSTS = "posts"

    def label(self, count: int) -> str:
        """Human label for ``count`` of this metric ("1 follower", "10 followers")."""
        singular, plural = _LABELS[self]
        return singular if count == 1 else plural


MILESTONE_THRESHOLDS: Dict[MetricType, Tuple[int, ...]] = {
    MetricType.FOLLOWERS: (1, 10, 50, 100, 500, 1000),
    MetricType.PROFILE_VIEWS: (10, 50, 100, 500, 1000, 5000),
    MetricType.PROJECTS: (1, 5, 10, 25, 50),
    MetricType.POSTS: (1, 5, 10, 25, 50),
}

_LABELS = {
    MetricType.FOLLOWERS: ("follower", "followers"),
    MetricType.PROFILE_VIEWS: ("profile view", "profile views"),
    MetricType.PROJECTS: ("project", "projects"),
    MetricType.POSTS: ("blog post", "blog posts"),
}


def is_milestone(metric_type: MetricType, count: int) -> bool:
    return count in MILESTONE_THRESHOLDS[metric_type]
