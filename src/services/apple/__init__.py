"""AppleScript bridge to Music.app.

Public API:
    - BridgeExecutor: Serialized command pipeline (build, readiness, run, decode, classify)
    - ScriptBuilder / ScriptCommand: Renders escaped command scripts
    - ReadinessGate: Makes sure Music.app is running before a command
    - ResultDecoder: Parses osascript source-form output
    - ErrorClassifier: Maps osascript failures to typed errors
    - AppleScriptExecutor: Runs osascript subprocesses
    - AppleScriptSanitizer: Escaping and template validation
"""

from services.apple.applescript_executor import AppleScriptExecutor
from services.apple.bridge_executor import BridgeExecutor, BridgeState
from services.apple.error_classifier import ErrorClassifier, ScriptOutcome
from services.apple.readiness_gate import ReadinessGate
from services.apple.result_decoder import ResultDecoder, ResponseNode
from services.apple.sanitizer import (
    MAX_SCRIPT_SIZE,
    AppleScriptSanitizationError,
    AppleScriptSanitizer,
)
from services.apple.script_builder import ScriptBuilder, ScriptCommand, TimeoutCategory

__all__ = [
    "MAX_SCRIPT_SIZE",
    "AppleScriptExecutor",
    "AppleScriptSanitizationError",
    "AppleScriptSanitizer",
    "BridgeExecutor",
    "BridgeState",
    "ErrorClassifier",
    "ReadinessGate",
    "ResponseNode",
    "ResultDecoder",
    "ScriptBuilder",
    "ScriptCommand",
    "ScriptOutcome",
    "TimeoutCategory",
]
