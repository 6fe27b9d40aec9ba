# cartflow/services/scope.py
from dataclasses import dataclass, field

from cartflow.domain.entities import Identity


@dataclass
class LoadScope:
    """
    Cancellation flag for work started on behalf of a transient context.
    Results of a call that finishes after cancel() are dropped, not committed.
    """

    cancelled: bool = field(default=False, init=False)

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class RehydrationTicket(LoadScope):
    """Pending remote reload of a cart, issued when the identity changes."""

    identity: Identity = field(default_factory=Identity.guest)
    revision: int = 0
