"""Exception types raised by the HTML cleanup tool."""


class HtmlCleanupError(Exception):
    """Base class for cleanup errors."""
    pass


class ConfigurationError(HtmlCleanupError):
    """Missing or invalid command line arguments."""
    pass


class RuleSetError(ConfigurationError):
    """A rule set file or mapping that cannot be turned into a RuleSet."""
    pass


class DocumentParseError(HtmlCleanupError):
    """Input that cannot be parsed as an HTML document at all."""
    pass
