from pydantic import BaseModel

from ext.ext_httpx.main import HttpxConfig
from ext.llm.main import LLMConfig
from ext.embedding.main import EmbeddingModelConfig
from ext.rag.main import RAGConfig


class ExtensionRegistry(BaseModel):
    """
    define here
    """

    httpx: HttpxConfig = HttpxConfig()
    llm: LLMConfig | None = None
    embedding: EmbeddingModelConfig = EmbeddingModelConfig()
    rag: RAGConfig = RAGConfig()
