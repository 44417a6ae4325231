
from .capture import CaptureProcess, build_capture_command
from .retry_governor import Decision, NextAction, RetryGovernor, RetryPolicy
from .segment_recorder import SegmentOutcome, SegmentRecorder, SegmentResult
from .settings import RecorderConfig, prepare_directories, resolve_config
from .shutdown_coordinator import ShutdownCoordinator, ShutdownState
from .supervisor import RecordingSupervisor, SupervisorStats
from .validation import validate_config


__all__ = [
    'CaptureProcess',
    'build_capture_command',
    'Decision',
    'NextAction',
    'RetryGovernor',
    'RetryPolicy',
    'SegmentOutcome',
    'SegmentRecorder',
    'SegmentResult',
    'RecorderConfig',
    'prepare_directories',
    'resolve_config',
    'ShutdownCoordinator',
    'ShutdownState',
    'RecordingSupervisor',
    'SupervisorStats',
    'validate_config',
]
