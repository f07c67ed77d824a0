"""DevLink notifier: scheduled digests, reminders and event emails."""

__version__ = "0.1.0"
