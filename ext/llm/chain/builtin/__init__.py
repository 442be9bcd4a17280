"""
内置 Chain

端侧常用的文本任务：摘要、分类、实体抽取、对话、翻译、改写、校对
"""

from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.chat import DEFAULT_CHAT_SYSTEM_PROMPT, ChatChain
from ext.llm.chain.builtin.classify import DEFAULT_CATEGORIES, ClassifyChain
from ext.llm.chain.builtin.extract import DEFAULT_ENTITY_TYPES, ExtractChain
from ext.llm.chain.builtin.prompts import detect_language, language_name, strip_preamble
from ext.llm.chain.builtin.proofread import ProofreadChain
from ext.llm.chain.builtin.rewrite import RewriteChain
from ext.llm.chain.builtin.summarize import SummarizeChain
from ext.llm.chain.builtin.translate import TranslateChain
from ext.llm.chain.builtin.types import (
    ChatResult,
    Classification,
    ClassifyResult,
    Entity,
    ExtractResult,
    ProofreadCorrection,
    ProofreadResult,
    RewriteOutputType,
    RewriteResult,
    SummarizeResult,
    TranslateResult,
)

__all__ = [
    "BuiltinChain",
    "SummarizeChain",
    "ClassifyChain",
    "ExtractChain",
    "ChatChain",
    "TranslateChain",
    "RewriteChain",
    "ProofreadChain",
    "DEFAULT_CATEGORIES",
    "DEFAULT_ENTITY_TYPES",
    "DEFAULT_CHAT_SYSTEM_PROMPT",
    "strip_preamble",
    "language_name",
    "detect_language",
    "RewriteOutputType",
    "SummarizeResult",
    "Classification",
    "ClassifyResult",
    "Entity",
    "ExtractResult",
    "ChatResult",
    "TranslateResult",
    "RewriteResult",
    "ProofreadCorrection",
    "ProofreadResult",
]
