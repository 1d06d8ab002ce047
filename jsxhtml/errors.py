"""
Error taxonomy for the jsx-to-html pipeline.

Every failure is deterministic for a given set of inputs, so nothing here is
retried: configuration, declaration, execution and scratch I/O errors all
abort the build. Correlation gaps are only warnings (see reporting.warn).
"""


class JsxToHtmlError(Exception):
    """Base error with an optional file path, offending line and fix hint."""
    title = "Build Error"

    def __init__(self, message, path=None, line_number=None, context=None, suggestion=None):
        self.message = message
        self.path = path
        self.line_number = line_number
        self.context = context  # The offending line
        self.suggestion = suggestion  # How to fix it
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with location, context and suggestion."""
        lines = [f"\n❌ {self.title}"]
        if self.path:
            lines.append(f" in {self.path}")
            if self.line_number:
                lines.append(f", line {self.line_number}")
        lines.append(":\n")

        lines.append(f"   {self.message}\n")

        if self.context:
            lines.append(f"   > {self.context}\n")

        if self.suggestion:
            lines.append(f"   💡 {self.suggestion}\n")

        return "".join(lines)


class ConfigurationError(JsxToHtmlError):
    """Missing or unreadable source root, or an invalid config file."""
    title = "Configuration Error"


class DeclarationError(JsxToHtmlError):
    """Two entries claim the same output document name."""
    title = "Declaration Error"


class ExecutionError(JsxToHtmlError):
    """A module threw inside the sandbox, or a script default is not callable."""
    title = "Execution Error"

    def __init__(self, message, path=None, stack=None, **kwargs):
        self.stack = stack
        super().__init__(message, path=path, **kwargs)


class ScratchIOError(JsxToHtmlError):
    """The scratch directory could not be created or written."""
    title = "Scratch I/O Error"
