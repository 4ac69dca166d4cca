"""Actor -- the user on whose behalf a mutating operation runs."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """
    Identity of the caller of a mutating operation.

    Written to ``created_by`` / ``created_by_name`` of ledger entries and to
    ``recorded_by`` of advance repayments.  Authentication is the caller's
    concern; the kernel only records who acted.
    """

    id: str
    display_name: str

    SYSTEM_ID = "system"

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Actor id must not be empty")
        if not self.display_name:
            raise ValueError("Actor display_name must not be empty")

    @classmethod
    def system(cls) -> "Actor":
        """Actor used by scripts and maintenance jobs."""
        return cls(id=cls.SYSTEM_ID, display_name="System")
