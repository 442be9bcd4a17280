"""
文档分块

把长文本切成适合 embedding 的片段：
    - 句子模式：按句子边界装箱，相邻片段之间保留上一片段尾部的若干句子作为重叠
    - 字符模式：固定长度窗口，尽量在空白处断开

所有片段都记录其在原文中的字符区间，满足 text[start_offset:end_offset] == content。
"""

import re
from typing import List, Tuple

from loguru import logger

from ext.rag.types import ChunkingConfig, ChunkingStats, DocumentChunk

# 句末标点 + 空白，中日文句末标点不要求空白；换行也视为句子边界
_SENTENCE_BOUNDARY = re.compile(r"[.!?]+[\"'”’)\]]*\s+|[。！？]+\s*|\n\s*")

_WINDOW_SEPARATORS = ["\n\n", "\n", " "]

Span = Tuple[int, int]


class DocumentChunker:
    """文档分块器

    使用示例:
        >>> chunker = DocumentChunker(ChunkingConfig.short_document())
        >>> chunks = chunker.chunk(text, metadata={"source": "notes"})
        >>> chunker.stats(chunks).avg_size
    """

    def __init__(self, config: ChunkingConfig | None = None):
        self.config = config or ChunkingConfig()

    def chunk(self, text: str, metadata: dict[str, str] | None = None) -> List[DocumentChunk]:
        """切分文本

        Args:
            text: 原文
            metadata: 附加到每个片段的数据

        Returns:
            片段列表，index 从 0 连续编号；空白文本返回空列表
        """
        if not text or not text.strip():
            return []

        if self.config.respect_sentences:
            spans = self._pack_sentences(text)
        else:
            spans = self._split_windows(text, 0, len(text), self.config.target_chunk_size, self.config.chunk_overlap)

        spans = [span for span in (self._strip_span(text, start, end) for start, end in spans) if span]
        spans = self._merge_small_tail(spans)

        chunks = [
            DocumentChunk(
                content=text[start:end],
                index=index,
                start_offset=start,
                end_offset=end,
                metadata=dict(metadata or {}),
            )
            for index, (start, end) in enumerate(spans)
        ]
        logger.debug(
            f"DocumentChunker chunk - length: {len(text)}, chunks: {len(chunks)}, "
            f"respect_sentences: {self.config.respect_sentences}"
        )
        return chunks

    def estimate_chunk_count(self, text: str) -> int:
        """粗略估计片段数"""
        if not text:
            return 0
        effective = max(1, self.config.target_chunk_size - self.config.chunk_overlap)
        return max(1, (len(text) + effective - 1) // effective)

    @staticmethod
    def stats(chunks: List[DocumentChunk]) -> ChunkingStats:
        if not chunks:
            return ChunkingStats()

        sizes = [len(chunk.content) for chunk in chunks]
        total = sum(sizes)
        return ChunkingStats(
            count=len(chunks),
            min_size=min(sizes),
            max_size=max(sizes),
            avg_size=total // len(chunks),
            total_size=total,
        )

    # ========== 句子模式 ==========

    @staticmethod
    def split_sentences(text: str) -> List[Span]:
        """按句子边界切分，返回 (start, end) 区间，区间包含句末空白"""
        spans: List[Span] = []
        start = 0
        for match in _SENTENCE_BOUNDARY.finditer(text):
            if match.end() > start:
                spans.append((start, match.end()))
                start = match.end()
        if start < len(text):
            spans.append((start, len(text)))
        return [(s, e) for s, e in spans if text[s:e].strip()]

    def _pack_sentences(self, text: str) -> List[Span]:
        target = self.config.target_chunk_size
        overlap = self.config.chunk_overlap

        # 超长句子先切成窗口，窗口之间不重叠
        units: List[Span] = []
        for start, end in self.split_sentences(text):
            if end - start > target:
                units.extend(self._split_windows(text, start, end, target, 0))
            else:
                units.append((start, end))

        if not units:
            return self._split_windows(text, 0, len(text), target, overlap)

        spans: List[Span] = []
        current: List[Span] = []
        for unit in units:
            if current and unit[1] - current[0][0] > target:
                spans.append((current[0][0], current[-1][1]))
                carried = self._overlap_units(current, overlap)
                if carried and unit[1] - carried[0][0] > target:
                    carried = []
                current = carried + [unit]
            else:
                current.append(unit)

        if current:
            spans.append((current[0][0], current[-1][1]))
        return spans

    @staticmethod
    def _overlap_units(units: List[Span], overlap: int) -> List[Span]:
        """取片段尾部总长不超过 overlap 的句子（不含片段的第一句）"""
        if overlap <= 0:
            return []

        end = units[-1][1]
        carried: List[Span] = []
        for unit in reversed(units[1:]):
            if end - unit[0] > overlap:
                break
            carried.insert(0, unit)
        return carried

    # ========== 字符模式 ==========

    @staticmethod
    def _split_windows(text: str, start: int, end: int, size: int, overlap: int) -> List[Span]:
        """在 [start, end) 内切出长度不超过 size 的窗口

        窗口尽量在分隔符处结束，下一窗口从 end - overlap 处开始
        """
        spans: List[Span] = []
        position = start
        while position < end:
            window_end = min(position + size, end)

            if window_end < end:
                for sep in _WINDOW_SEPARATORS:
                    last_sep = text.rfind(sep, position + 1, window_end)
                    if last_sep != -1:
                        window_end = last_sep + len(sep)
                        break

            spans.append((position, window_end))
            if window_end >= end:
                break

            next_position = window_end - overlap
            # 保证前进
            if next_position <= position:
                next_position = window_end
            position = next_position

        return spans

    # ========== 后处理 ==========

    @staticmethod
    def _strip_span(text: str, start: int, end: int) -> Span | None:
        segment = text[start:end]
        stripped = segment.strip()
        if not stripped:
            return None
        new_start = start + (len(segment) - len(segment.lstrip()))
        return new_start, new_start + len(stripped)

    def _merge_small_tail(self, spans: List[Span]) -> List[Span]:
        """最后一个片段短于 min_chunk_size 时并入前一个片段"""
        if len(spans) < 2:
            return spans

        last_start, last_end = spans[-1]
        if last_end - last_start >= self.config.min_chunk_size:
            return spans

        previous_start, _ = spans[-2]
        return spans[:-2] + [(previous_start, last_end)]


__all__ = [
    "DocumentChunker",
]
