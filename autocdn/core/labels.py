"""User-visible tags and status strings, per locale."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Labels:
    log_tag: str = "[log]"
    status_tag: str = "[status]"
    error_tag: str = "[error]"
    fatal_tag: str = "[fatal]"
    ready: str = "ready"
    initializing: str = "initializing"
    in_progress: str = "testing..."
    finished: str = "finished/stopped"
    loading: str = "loading..."
    saving: str = "saving..."
    saved: str = "saved!"
    error_prefix: str = "Error"
    save_failed_prefix: str = "Save failed"
    create_failed_prefix: str = "Create failed"
    delete_failed_prefix: str = "Delete failed"


ENGLISH = Labels()

CHINESE = Labels(
    log_tag="[日志]",
    status_tag="[状态]",
    error_tag="[错误]",
    fatal_tag="[致命错误]",
    ready="就绪",
    initializing="正在初始化...",
    in_progress="测速中...",
    finished="已完成 / 已停止",
    loading="加载中...",
    saving="保存中...",
    saved="已保存!",
    error_prefix="错误",
    save_failed_prefix="保存失败",
    create_failed_prefix="创建失败",
    delete_failed_prefix="删除失败",
)

_LOCALES = {
    "en": ENGLISH,
    "zh": CHINESE,
}


def available_locales() -> list[str]:
    return sorted(_LOCALES)


def get_labels(locale: str = "en") -> Labels:
    """Return the label set for ``locale`` (``zh_CN`` resolves to ``zh``)."""
    key = (locale or "en").strip().lower().replace("-", "_").split("_")[0]
    return _LOCALES.get(key, ENGLISH)


__all__ = ["CHINESE", "ENGLISH", "Labels", "available_locales", "get_labels"]
