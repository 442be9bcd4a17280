import os
import abc
import enum
from typing import Self, Generic, TypeVar
from pathlib import Path

from pydantic import BaseModel, model_validator

T = TypeVar("T")


class EnvironmentEnum(str, enum.Enum):
    local = "local"
    development = "development"
    test = "test"
    production = "production"


ENVIRONMENT = os.environ.get(
    "environment",  # noqa
    EnvironmentEnum.local.value,
)

BASE_DIR = Path(__file__).resolve().parent.parent


class ProjectConfig(BaseModel):
    unique_code: str
    debug: bool = False
    environment: EnvironmentEnum = EnvironmentEnum(ENVIRONMENT)
    log_level: str = "INFO"
    data_dir: str = "data"

    @model_validator(mode="after")
    def check_debug_options(self) -> Self:
        assert not (
            self.debug and self.environment == EnvironmentEnum.production
        ), "Production cannot set with debug enabled"
        return self

    @property
    def base_dir(self) -> Path:
        return BASE_DIR

    @property
    def data_path(self) -> Path:
        """数据目录（相对路径基于 BASE_DIR）"""
        path = Path(self.data_dir)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path


class ExtensionConfig(BaseModel): ...


class InstanceExtensionConfig(ExtensionConfig, Generic[T]):

    @property
    @abc.abstractmethod
    def instance(self) -> T: ...


class RegisterExtensionConfig(ExtensionConfig):

    @abc.abstractmethod
    async def register(self) -> None: ...

    @abc.abstractmethod
    async def unregister(self) -> None: ...
