"""Draw state machine: the only writer of the shared DrawState.

States are implicit in the record: idle (not spinning, no winner),
spinning, and revealed (not spinning, winner set). Every transition
returns the event to broadcast, always carrying the full snapshot.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from lucky_draw.config import settings
from lucky_draw.realtime import messages
from lucky_draw.schemas.draw import ColumnMapping, DrawMode, DrawState, Winner
from lucky_draw.services.prizes import prize_id, prize_name
from lucky_draw.services.winner_selector import select_winner
from lucky_draw.sheets.cache import RosterCache
from lucky_draw.sheets.errors import RosterFetchError
from lucky_draw.sheets.writeback import WriteBackClient


@dataclass
class Event:
    type: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}


class DrawStateMachine:
    def __init__(
        self,
        roster: RosterCache,
        write_back: WriteBackClient,
        salt: str | None = None,
    ):
        self._roster = roster
        self._write_back = write_back
        self._salt = settings.RNG_SALT if salt is None else salt
        self._state = DrawState()
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> DrawState:
        """A copy of the current state. Mutate only through the transitions."""
        return self._state.model_copy(deep=True)

    def snapshot(self) -> dict[str, Any]:
        return self._state.snapshot()

    def _state_event(self, event_type: str = messages.STATE) -> Event:
        return Event(event_type, self.snapshot())

    # --- transitions ---

    def set_mode(self, mode: Any) -> Event:
        self._state.mode = DrawMode.parse(mode)
        logger.info("Mode set to {}", self._state.mode.value)
        return self._state_event()

    def set_prize(self, prize: Any) -> Event:
        self._state.prize = prize if isinstance(prize, dict) else None
        logger.info("Prize set to {!r}", prize_name(self._state.prize) or None)
        return self._state_event()

    def set_ui(self, partial: dict[str, Any]) -> Event:
        self._state.ui = self._state.ui.merged(partial)
        return self._state_event()

    def start_spin(self) -> Event:
        """Begin spinning. Calling it again while spinning repeats the same effect."""
        self._state.ui = self._state.ui.merged({"showPrizePreview": False})
        self._state.spinning = True
        self._state.last_winner = None
        logger.info("Spin started")
        return self._state_event(messages.STARTED)

    async def stop_spin(self, mapping: ColumnMapping, operator: str = "") -> Event:
        """Stop spinning and draw a winner.

        Does not require a prior START_SPIN. The winners-log append runs as a
        background task after this returns.
        """
        self._state.spinning = False

        try:
            participants = await self._roster.get("participants")
            winners_log = await self._roster.get("winners")
        except RosterFetchError as e:
            logger.error("Draw aborted, roster unavailable: {}", e)
            self._state.last_winner = None
            payload = self.snapshot()
            payload.update(winner=None, error=str(e))
            return Event(messages.STOPPING, payload)

        winner = select_winner(
            participants.rows,
            winners_log.rows,
            self._state.mode,
            mapping,
            salt=self._salt,
        )
        self._state.last_winner = winner

        if winner is None:
            logger.warning("No eligible participant left (mode={})", self._state.mode.value)
        else:
            logger.info("Winner drawn: {} ({})", winner.name, winner.participant_id)
            if self._state.prize:
                self._spawn(self._log_winner(self._log_row(winner, operator)))

        payload = self.snapshot()
        payload["winner"] = payload["lastWinner"]
        return Event(messages.STOPPING, payload)

    def reset(self) -> Event:
        """Clear the spin and the revealed winner. Prize and mode are kept."""
        self._state.spinning = False
        self._state.last_winner = None
        self._state.ui = self._state.ui.merged({"showPrizePreview": False, "previewHint": ""})
        logger.info("Draw reset")
        return self._state_event()

    # --- winners log ---

    def _log_row(self, winner: Winner, operator: str) -> dict[str, Any]:
        prize = self._state.prize
        return {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "prize_id": prize_id(prize),
            "prize_name": prize_name(prize),
            "participant_id": winner.participant_id,
            "name": winner.name,
            "mode": self._state.mode.value,
            "operator": operator,
        }

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _log_winner(self, row: dict[str, Any]) -> None:
        try:
            result = await self._write_back.append_winner({"row": row})
            if not result.ok:
                logger.warning("Winner log not written: {}", result.to_response())
        except Exception as e:
            logger.error("Winner log append failed: {}", e)
        finally:
            self._roster.invalidate("winners")

    async def drain(self) -> None:
        """Wait for pending winners-log appends."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
