"""Exception types raised by the renaming engine."""


class RenamerError(Exception):
    """Base class for all engine errors."""
    pass


class TemplateError(RenamerError):
    """Raised when a naming template is malformed or uses unknown placeholders."""
    pass


class DuplicateEpisodeError(RenamerError):
    """Raised when a catalog lists the same (season, episode) twice."""

    def __init__(self, season: int, episode: int, titles: tuple[str, str]):
        self.season = season
        self.episode = episode
        self.titles = titles
        super().__init__(
            f"Catalog lists S{season:02d}E{episode:02d} twice: "
            f"'{titles[0]}' and '{titles[1]}'"
        )


class PreflightValidationError(RenamerError):
    """Raised when a plan is no longer safe to apply.

    Carries every problem found so a caller can show them all at once.
    """

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        summary = problems[0] if problems else "plan failed validation"
        if len(problems) > 1:
            summary += f" (and {len(problems) - 1} more)"
        super().__init__(summary)


class FilesystemOperationError(RenamerError):
    """Raised when a move fails part-way through a batch."""

    def __init__(self, source: str, destination: str, reason: str):
        self.source = source
        self.destination = destination
        self.reason = reason
        super().__init__(f"Could not move '{source}' to '{destination}': {reason}")
