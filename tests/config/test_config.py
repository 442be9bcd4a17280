"""
测试配置加载与扩展注册
"""

from pathlib import Path

import pytest

from config.default import EnvironmentEnum
from config.main import local_configs
from core.context import ctx
from ext.embedding.providers.hashing import HashingEmbeddingModel
from ext.rag.main import RAGConfig


class TestLocalConfig:
    """测试 etc/test.yaml 加载"""

    def test_project(self):
        assert local_configs.project.unique_code == "locanara-test"
        assert local_configs.project.environment == EnvironmentEnum.test
        assert local_configs.project.data_path == local_configs.project.base_dir / "data"

    def test_extensions(self):
        extensions = local_configs.extensions
        assert extensions.httpx.timeout == 10.0
        assert extensions.llm is None
        assert extensions.embedding.dimension == 256
        assert extensions.rag.db_file == ":memory:"
        print(f"✓ embedding: {extensions.embedding.model_name}")

    def test_embedding_instance(self):
        engine = local_configs.extensions.embedding.instance
        assert isinstance(engine.model, HashingEmbeddingModel)
        assert engine.dimension == 256


class TestRAGConfig:
    """测试 RAG 配置"""

    def test_resolve_db_path(self, tmp_path):
        assert RAGConfig(db_file=":memory:").resolve_db_path(tmp_path) == ":memory:"
        assert RAGConfig(db_file="rag.db").resolve_db_path(tmp_path) == str(tmp_path / "rag.db")
        absolute = str(Path(tmp_path, "other.db").resolve())
        assert RAGConfig(db_file=absolute).resolve_db_path(Path("/unused")) == absolute

    def test_instance_before_register(self):
        with pytest.raises(RuntimeError):
            _ = RAGConfig().instance


class TestContext:
    """测试扩展的注册与释放"""

    @pytest.mark.asyncio
    async def test_ctx(self):
        extensions = local_configs.extensions

        async with ctx():
            assert extensions.httpx.registered
            assert extensions.rag.registered
            manager = extensions.rag.instance
            assert manager.is_initialized
            collection = await manager.create_collection("Scratch")
            assert collection.dimension == 256

        assert not extensions.httpx.registered
        assert not extensions.rag.registered
