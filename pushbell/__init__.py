"""pushbell: per-subscriber web-push notification scheduler."""

__version__ = "0.1.0"
