"""Stream controller and session outcomes."""

from blockstream.stream.controller import OutcomeCallback, StreamController
from blockstream.stream.outcome import OutcomeStatus, StreamOutcome

__all__ = ["OutcomeCallback", "OutcomeStatus", "StreamController", "StreamOutcome"]
