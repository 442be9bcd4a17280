from pathlib import Path
from typing_extensions import override

from loguru import logger
from pydantic import Field

from config.default import InstanceExtensionConfig, RegisterExtensionConfig
from ext.rag.chunker import DocumentChunker
from ext.rag.collection_manager import RAGCollectionManager
from ext.rag.types import ChunkingConfig
from ext.rag.vector_store import MEMORY_DB, VectorStore


class RAGConfig(RegisterExtensionConfig, InstanceExtensionConfig[RAGCollectionManager]):
    """RAG 配置，负责向量库的打开与关闭

    db_file 为相对路径时放在 project.data_path 下；embedding 引擎取 extensions.embedding
    """

    _manager: RAGCollectionManager | None = None

    db_file: str = "locanara_rag.db"
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)

    def resolve_db_path(self, data_path: Path) -> str:
        if self.db_file == MEMORY_DB or Path(self.db_file).is_absolute():
            return self.db_file
        return str(data_path / self.db_file)

    @property
    def instance(self) -> RAGCollectionManager:
        if self._manager is None:
            raise RuntimeError("RAG collection manager not initialized. Make sure register() has been called.")
        return self._manager

    @property
    def registered(self) -> bool:
        return self._manager is not None

    @override
    async def register(self) -> None:
        if self._manager is not None:
            return

        from config.main import local_configs

        db_path = self.resolve_db_path(local_configs.project.data_path)
        manager = RAGCollectionManager(
            store=VectorStore(db_path),
            engine=local_configs.extensions.embedding.instance,
            chunker=DocumentChunker(self.chunking),
        )
        await manager.initialize()
        self._manager = manager
        logger.info(f"RAG collection manager initialized: {db_path}")

    @override
    async def unregister(self) -> None:
        if self._manager is None:
            return

        await self._manager.shutdown()
        self._manager = None
        logger.info("RAG collection manager closed")
