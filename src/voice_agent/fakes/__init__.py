from voice_agent.fakes.fake_audit import FakeAuditSink
from voice_agent.fakes.fake_llm import FakeLLM
from voice_agent.fakes.fake_retriever import FakeRetriever
from voice_agent.fakes.fake_telemetry import FakeTelemetry

__all__ = ["FakeAuditSink", "FakeLLM", "FakeRetriever", "FakeTelemetry"]
