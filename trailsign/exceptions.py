"""
Module: exceptions
Purpose: Custom exception and warning hierarchy for Trailsign.
"""


class TrailsignError(Exception):
    """Base exception for Trailsign."""

    pass


class EmptyInputError(TrailsignError):
    pass


class MissingPrerequisiteError(TrailsignError):
    """
    Raised when a stage cannot read the output of an earlier stage.
    """

    def __init__(self, prerequisite: str, upstream_step: str, detail: str | None = None):
        self.prerequisite = prerequisite
        self.upstream_step = upstream_step
        self.detail = detail
        message = f"Could not read {prerequisite}. Run '{upstream_step}' first."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ScanError(TrailsignError):
    pass


class MetadataError(TrailsignError):
    pass


class TrailImportError(TrailsignError):
    pass


class ConfigError(TrailsignError):
    pass


class ReportWriteError(TrailsignError):
    pass


class TrailsignWarning(UserWarning):
    """Base class for non-fatal conditions collected during a run."""

    pass


class NoMatchWarning(TrailsignWarning):
    def __init__(self, cluster_id: str):
        self.cluster_id = cluster_id
        super().__init__(f"Cluster {cluster_id} has no intersecting trails")


class DegenerateGeometryWarning(TrailsignWarning):
    def __init__(self, trail_name: str, point_count: int):
        self.trail_name = trail_name
        self.point_count = point_count
        super().__init__(
            f"Trail '{trail_name}' has {point_count} coordinate(s) and was excluded from matching"
        )
