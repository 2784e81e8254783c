from voice_agent.telemetry.audit import DataStoreAuditSink, LoggingAuditSink, ToolAuditSink
from voice_agent.telemetry.noop import NoOpTelemetry

__all__ = ["DataStoreAuditSink", "LoggingAuditSink", "NoOpTelemetry", "ToolAuditSink"]
