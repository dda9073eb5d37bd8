"""Refactor errors.

RefactorError subclasses ValueError so the CLI reports it the same way as
any other invalid input.
"""


class RefactorError(ValueError):
    """Invalid rename request (unknown type, built-in type, name already taken, ...)."""

    pass


class RenameConflictError(RefactorError):
    """The plan has conflicts; nothing was written."""

    def __init__(self, conflicts):
        self.conflicts = list(conflicts)
        super().__init__(
            f"Rename blocked by {len(self.conflicts)} conflict(s); no files were changed"
        )


class MoveValidationError(RefactorError):
    """A directory move can't be done safely; nothing was written."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Cannot move files: " + "; ".join(self.problems))
