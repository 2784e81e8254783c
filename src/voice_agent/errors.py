from __future__ import annotations


class VoiceAgentError(Exception):
    """Base error for the turn pipeline."""
    code: str = "VOICE_AGENT_ERROR"
    recoverable: bool = True

    def __init__(self, message: str, *, code: str | None = None, recoverable: bool | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable


class ConfigurationError(VoiceAgentError):
    code = "CONFIGURATION_ERROR"
    recoverable = False


class ToolTimeoutError(VoiceAgentError):
    code = "TOOL_TIMEOUT"

    def __init__(self, tool_name: str, timeout_s: float):
        super().__init__(f"Tool execution timeout: {tool_name} after {timeout_s:.2f}s")
        self.tool_name = tool_name
        self.timeout_s = timeout_s
