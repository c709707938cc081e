"""Custom exceptions for prbrief."""


class PRBriefError(Exception):
    """Base exception for all prbrief errors."""


class ConfigError(PRBriefError):
    """Invalid configuration value."""


class EventError(PRBriefError):
    """The trigger event does not describe a pull request."""
