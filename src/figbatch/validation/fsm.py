"""Row lifecycle finite state machine.

Each RowTask owns one instance, created at ``pending``. The FSM only
guards transition legality; the row task decides when to fire and
forwards the resulting status to its registry.
"""

from __future__ import annotations

from statemachine import State, StateMachine


class RowLifecycleSM(StateMachine):
    """Four-state lifecycle of one spreadsheet row.

    States:
        pending -- Row task created, checks not started.
        parsing -- Checks running.
        valid   -- Every check finished without a failure.
        error   -- A check failed, processing crashed, or the batch halted.

    ``valid`` and ``error`` are final.
    """

    pending = State("pending", initial=True, value="pending")
    parsing = State("parsing", value="parsing")
    valid = State("valid", final=True, value="valid")
    error = State("error", final=True, value="error")

    begin = pending.to(parsing)
    succeed = parsing.to(valid)
    fail = parsing.to(error)
    halt = pending.to(error) | parsing.to(error)

    @property
    def settled(self) -> bool:
        """True once the row reached valid or error."""
        return self.current_state.value in ("valid", "error")


def create_fsm(current_state: str = "pending") -> RowLifecycleSM:
    """Create an FSM instance at the given state.

    Args:
        current_state: One of 'pending', 'parsing', 'valid', 'error'.
    """
    return RowLifecycleSM(start_value=current_state)
