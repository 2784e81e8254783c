from voice_agent.rag.context_compiler import ContextCompiler
from voice_agent.rag.search import KeywordKnowledgeRetriever, KnowledgeRetriever

__all__ = [
    "ContextCompiler",
    "KeywordKnowledgeRetriever",
    "KnowledgeRetriever",
]
