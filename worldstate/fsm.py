from __future__ import annotations

from statemachine import State, StateMachine

from worldstate.api.models import Player, PlayerStatus


UNKNOWN = "unknown"


class SessionFSM(StateMachine):
    """Connection lifecycle of one identity.

    - unknown -> active: first connect creates the player
    - logged_out -> active: reconnect restores the stored player
    - active -> logged_out: disconnect
    - active -> active: in-game mutations (EnterGame)

    The FSM only guards transitions; the session module moves the record.
    """

    unknown = State("Unknown", value=UNKNOWN, initial=True)
    active = State("Active", value=PlayerStatus.active.value)
    logged_out = State("LoggedOut", value=PlayerStatus.logged_out.value)

    connect = unknown.to(active) | logged_out.to(active)
    disconnect = active.to(logged_out)
    enter_game = active.to.itself()

    def __init__(self, player: Player | None):
        self.player = player
        start = player.status.value if player is not None else UNKNOWN
        super().__init__(start_value=start)

    def sync_status_to_model(self) -> None:
        if self.player is not None:
            self.player.status = PlayerStatus(str(self.current_state.value))
