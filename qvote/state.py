# process-wide engine + event log for this node
from typing import Optional

from .config import EVENT_SINKS, NODE_ID, EngineSettings
from .engine import VotingEngine
from .events import EventForwarder, EventLog

event_log: EventLog = EventLog(origin=NODE_ID)
engine: VotingEngine = VotingEngine(settings=EngineSettings(), event_sink=event_log)
forwarder: EventForwarder = EventForwarder(event_log, EVENT_SINKS)


def get_engine() -> VotingEngine:
    return engine


def get_event_log() -> EventLog:
    return event_log


def reset(settings: Optional[EngineSettings] = None, clock=None) -> VotingEngine:
    """
    Replace the node state with a fresh engine and event log.
    """
    global engine, event_log, forwarder
    event_log = EventLog(origin=NODE_ID)
    engine = VotingEngine(settings=settings or EngineSettings(), clock=clock, event_sink=event_log)
    forwarder = EventForwarder(event_log, EVENT_SINKS)
    return engine
