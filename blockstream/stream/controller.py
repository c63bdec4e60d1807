"""Stream controller: the state machine driving one subject's generation sessions.

States::

    IDLE -> AWAITING_CHANNEL -> STREAMING -> {COMPLETED, FAILED} -> IDLE

Every inbound channel message goes through :meth:`StreamController.dispatch`,
which validates it, checks its correlation, and hands it to exactly one
handler. Each event, including its document mutation, runs to completion
before the next one is looked at.
"""

import functools
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from blockstream.channel.base import Channel
from blockstream.config import StreamSettings
from blockstream.document.model import Document
from blockstream.document.mutator import DocumentMutator
from blockstream.exceptions import (
    AnchorLostError,
    ChannelError,
    InvalidSessionStateError,
    MutationError,
    SessionValidationError,
)
from blockstream.logger import Logger, session_logger
from blockstream.sessions.ledger import Admission, BlockLedger, UnitState
from blockstream.sessions.models import ACTIVE_STATUSES, GenerationSession, SessionStatus
from blockstream.sessions.registry import CorrelationRegistry
from blockstream.sessions.resolver import PositionResolver
from blockstream.stream.outcome import OutcomeStatus, StreamOutcome
from blockstream.validation.events import (
    GENERATE_EVENT,
    AnnounceEvent,
    CompleteEvent,
    ErrorEvent,
    EventName,
    FinalizeEvent,
    GenerationRequest,
    StreamEvent,
    parse_event,
)

OutcomeCallback = Callable[[StreamOutcome], None]


class StreamController:
    """Drives generation sessions for one subject document."""

    def __init__(
        self,
        subject_id: str,
        document: Document,
        channel: Channel,
        registry: CorrelationRegistry,
        resolver: Optional[PositionResolver] = None,
        mutator: Optional[DocumentMutator] = None,
        settings: Optional[StreamSettings] = None,
        on_outcome: Optional[OutcomeCallback] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        """
        Initialize the controller and attach it to its channel and document.

        Args:
            subject_id: Subject (assignment) whose document this controller edits
            document: Live document of the subject
            channel: Duplex channel to the producer
            registry: Correlation registry used to filter inbound events
            resolver: Position resolver (built on ``document`` if omitted)
            mutator: Document mutator (built on ``document`` if omitted)
            settings: Stream settings (defaults if omitted)
            on_outcome: Called once per session with its terminal outcome
            logger: Logger instance
        """
        self.subject_id = subject_id
        self.document = document
        self.channel = channel
        self.registry = registry
        self.logger = logger or session_logger
        self.resolver = resolver or PositionResolver(document, logger=self.logger)
        self.mutator = mutator or DocumentMutator(document, logger=self.logger)
        self.settings = settings or StreamSettings()
        self.on_outcome = on_outcome

        self.session: Optional[GenerationSession] = None
        self.ledger: Optional[BlockLedger] = None
        self.last_outcome: Optional[StreamOutcome] = None
        self._state = SessionStatus.IDLE

        self._handlers: Dict[EventName, Callable[[Any], None]] = {
            EventName.ANNOUNCE: self._on_announce,
            EventName.FINALIZE: self._on_finalize,
            EventName.COMPLETE: self._on_complete,
            EventName.ERROR: self._on_error,
        }
        for name in EventName:
            channel.on(name.value, functools.partial(self.dispatch, name.value))
        self._unsubscribe = document.subscribe(self._on_document_change)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionStatus:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in ACTIVE_STATUSES

    def _set_state(self, state: SessionStatus) -> None:
        self.logger.debug(
            "Controller state change",
            subject_id=self.subject_id,
            from_state=self._state.value,
            to_state=state.value,
        )
        self._state = state
        if self.session is not None:
            self.session.set_status(state)

    # ------------------------------------------------------------------
    # Host entry points
    # ------------------------------------------------------------------

    async def start(
        self,
        prompt: str,
        request_handle: str,
        auxiliary_references: Iterable[str] = (),
    ) -> GenerationSession:
        """
        Start a generation session.

        Args:
            prompt: User prompt
            request_handle: Handle of the request node that triggered generation;
                generated units are inserted right after it
            auxiliary_references: Other subjects to pass to the producer as context

        Returns:
            The new session. If the channel cannot be reached the session has
            already failed and the outcome was reported through ``on_outcome``.

        Raises:
            SessionValidationError: If the prompt is empty or the request node
                is nested inside another block
            InvalidSessionStateError: If a session is already active
            AnchorLostError: If the request node is not in the document
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise SessionValidationError("Please enter a prompt")
        if self.is_active:
            raise InvalidSessionStateError(
                f"Generation already in progress for subject '{self.subject_id}'",
                details={"correlation_id": self.session.correlation_id if self.session else None},
            )
        if not self.document.contains(request_handle):
            raise AnchorLostError(request_handle)
        if not self.document.is_top_level(request_handle):
            # Units are inserted between top-level blocks only
            raise SessionValidationError(
                "The request node must be a top-level block",
                details={"handle": request_handle},
            )

        correlation_id = self.registry.open(self.subject_id)
        session = GenerationSession(
            correlation_id=correlation_id,
            subject_id=self.subject_id,
            anchor_handle=request_handle,
            prompt=prompt,
            auxiliary_references=list(auxiliary_references),
        )
        self.session = session
        self.ledger = BlockLedger(correlation_id, logger=self.logger)
        self._set_state(SessionStatus.AWAITING_CHANNEL)

        self.logger.info(
            "Generation session started",
            subject_id=self.subject_id,
            correlation_id=correlation_id,
            prompt_length=len(prompt),
            references=len(session.auxiliary_references),
        )

        request = GenerationRequest(
            subject_id=self.subject_id,
            correlation_id=correlation_id,
            prompt=prompt,
            auxiliary_references=session.auxiliary_references,
        )
        try:
            if not self.channel.connected:
                await self.channel.connect()
            if self.session is not session or not self.is_active:
                # Cancelled while the channel was opening
                return session
            await self.channel.send(GENERATE_EVENT, request.to_wire())
        except ChannelError as exc:
            if self.session is session and self.is_active:
                self._terminate(OutcomeStatus.FAILED, message=exc.message, code=exc.code)
        return session

    def cancel(self, reason: str = "Generation cancelled") -> Optional[StreamOutcome]:
        """
        Abort the active session: remove scaffolds and close it.

        Events that arrive later for the session are rejected as stale.

        Returns:
            The outcome, or None if no session was active
        """
        if not self.is_active:
            return None
        return self._terminate(OutcomeStatus.CANCELLED, message=reason, code="CANCELLED")

    def cleanup(self) -> int:
        """Remove every scaffold of this subject. Safe to call any number of times."""
        return self.mutator.remove_all_scaffolds(self.subject_id)

    def detach(self) -> None:
        """Stop observing the document. Cancels an active session first."""
        self.cancel("Controller detached")
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event_name: str, data: Any) -> bool:
        """
        Route one inbound channel message.

        Returns:
            True if the event belonged to the active session and was handled
        """
        if not isinstance(data, Mapping):
            self.logger.warning("Malformed event dropped", event_name=event_name, reason="not_an_object")
            return False
        try:
            event = parse_event(event_name, data)
        except PydanticValidationError as exc:
            self.logger.warning(
                "Malformed event dropped",
                event_name=event_name,
                errors=exc.error_count(),
                detail=exc.errors()[0].get("msg") if exc.errors() else None,
            )
            return False
        except ValueError:
            self.logger.debug("Unknown event ignored", event_name=event_name)
            return False

        if not self._is_current(event):
            self.logger.debug(
                "Stale or foreign event dropped",
                event_name=event_name,
                correlation_id=event.correlation_id,
                subject_id=event.subject_id,
            )
            return False

        if self._state is SessionStatus.AWAITING_CHANNEL:
            self._set_state(SessionStatus.STREAMING)
        self._handlers[event.name](event)
        return True

    def _is_current(self, event: StreamEvent) -> bool:
        session = self.session
        if session is None or not self.is_active:
            return False
        if event.subject_id != self.subject_id or event.correlation_id != session.correlation_id:
            return False
        return self.registry.is_current(event.correlation_id, event.subject_id)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_announce(self, event: AnnounceEvent) -> None:
        session, ledger = self.session, self.ledger
        if ledger.admit_announce(event.index, event.kind) is Admission.REJECTED:
            return

        offset = self.resolver.resolve_insert_position(session, ledger)
        if offset is None:
            error = AnchorLostError(session.anchor_handle)
            self._terminate(OutcomeStatus.FAILED, message=error.message, code=error.code)
            return

        try:
            handle = self.mutator.insert_scaffold(
                offset,
                event.kind,
                index=event.index,
                correlation_id=session.correlation_id,
                subject_id=self.subject_id,
            )
        except MutationError as exc:
            self.logger.error(
                "Scaffold insert failed",
                correlation_id=session.correlation_id,
                index=event.index,
                offset=offset,
                error=exc.message,
            )
            self._terminate(OutcomeStatus.FAILED, message=exc.message, code=exc.code)
            return

        ledger.mark_inserted(event.index, handle)

    def _on_finalize(self, event: FinalizeEvent) -> None:
        session, ledger = self.session, self.ledger
        unit = ledger.get(event.index)
        if (
            unit is not None
            and unit.state is UnitState.PLACEHOLDER_INSERTED
            and not self.mutator.has_scaffold(unit.handle)
        ):
            # The user deleted the scaffold; the unit's content is dropped with it
            self.logger.warning(
                "Scaffold gone before finalize",
                correlation_id=session.correlation_id,
                index=event.index,
                handle=unit.handle,
            )
            ledger.mark_dropped(event.index)
            return

        if ledger.admit_finalize(event.index, event.payload) is Admission.REJECTED:
            return
        self.mutator.replace_scaffold(unit.handle, event.payload)

    def _on_complete(self, event: CompleteEvent) -> None:
        if event.success:
            self._terminate(OutcomeStatus.COMPLETED)
        else:
            self._terminate(
                OutcomeStatus.FAILED,
                message="Generation did not complete",
                code="GENERATION_INCOMPLETE",
            )

    def _on_error(self, event: ErrorEvent) -> None:
        recoverable = event.recoverable
        if recoverable is None:
            recoverable = self.settings.is_recoverable_code(event.code)

        if recoverable and self.ledger.has_finalized_any():
            self.logger.info(
                "Recoverable stream error after partial output, keeping content",
                correlation_id=self.session.correlation_id,
                code=event.code,
                finalized=self.ledger.finalized_count,
            )
            self._terminate(OutcomeStatus.SOFT_COMPLETED, message=event.message, code=event.code)
        else:
            self._terminate(
                OutcomeStatus.FAILED, message=event.message, code=event.code or "STREAM_ERROR"
            )

    def _on_document_change(self, document: Document) -> None:
        session = self.session
        if self.is_active and session is not None and not document.contains(session.anchor_handle):
            self.logger.info(
                "Request node removed, cancelling generation",
                correlation_id=session.correlation_id,
            )
            self.cancel("Request node removed")

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def _terminate(
        self,
        status: OutcomeStatus,
        message: Optional[str] = None,
        code: Optional[str] = None,
    ) -> StreamOutcome:
        session = self.session
        ledger = self.ledger
        succeeded = status in (OutcomeStatus.COMPLETED, OutcomeStatus.SOFT_COMPLETED)
        self._set_state(SessionStatus.COMPLETED if succeeded else SessionStatus.FAILED)

        removed = 0
        try:
            removed = self.cleanup()
            if succeeded:
                # The request node has done its job; on failure it stays for a retry
                self.mutator.remove_node(session.anchor_handle)
        finally:
            self.registry.close(session.correlation_id)
            self.ledger = None
            self._state = SessionStatus.IDLE

        outcome = StreamOutcome(
            correlation_id=session.correlation_id,
            subject_id=self.subject_id,
            status=status,
            message=message,
            code=code,
            finalized_count=ledger.finalized_count if ledger else 0,
            scaffolds_removed=removed,
        )
        self.last_outcome = outcome
        if succeeded:
            self.logger.info(
                "Generation session finished",
                correlation_id=session.correlation_id,
                status=status.value,
                finalized=outcome.finalized_count,
                scaffolds_removed=removed,
            )
        else:
            self.logger.warning(
                "Generation session failed",
                correlation_id=session.correlation_id,
                status=status.value,
                code=code,
                message=message,
                scaffolds_removed=removed,
            )

        if self.on_outcome is not None:
            self.on_outcome(outcome)
        return outcome
