"""Errors raised by the analysis command surface and step executors."""


class AnalysisError(Exception):
	"""Base class for analysis errors."""


class AnalysisPreconditionError(AnalysisError):
	"""A command was issued in a state that does not allow it."""


class AnalysisConflictError(AnalysisPreconditionError):
	"""A run is already active (or still winding down) for the session."""


class ApprovalNotFoundError(AnalysisError, KeyError):
	"""The referenced approval is unknown or already resolved."""

	def __str__(self) -> str:
		return str(self.args[0]) if self.args else "Approval not found"


class ReportGenerationError(AnalysisError):
	"""Rating classification or report synthesis failed."""
