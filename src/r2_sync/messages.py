"""User-facing message catalog.

Each locale maps a message key to a formatting function.  The language is
chosen once per call from configuration; unknown languages use English.
"""

from collections.abc import Callable

DEFAULT_LANGUAGE = "en"

MessageFormatter = Callable[..., str]

_EN: dict[str, MessageFormatter] = {
    "config_first": lambda missing: (
        "Please configure R2 storage settings first (missing: "
        f"{', '.join(missing)})"
    ),
    "sync_folder_not_exist": lambda path: (
        f"Sync folder does not exist: {path}"
    ),
    "conn_success": lambda count: (
        f"Connection successful! {count} .md files in bucket"
    ),
    "conn_failed": lambda msg: f"Connection failed: {msg}",
    "upload_complete": lambda ok, fail: (
        f"Upload complete: {ok} succeeded, {fail} failed"
    ),
    "download_complete": lambda ok, fail: (
        f"Download complete: {ok} succeeded, {fail} failed"
    ),
    "sync_complete": lambda up, down, fail: (
        f"Sync complete: {up} uploaded, {down} downloaded, {fail} failed"
    ),
    "plan_summary": lambda up, down: (
        f"Sync plan: {up} to upload, {down} to download"
    ),
    "plan_empty": lambda: "Everything is in sync",
    "upload_failed": lambda msg: f"Upload failed: {msg}",
    "download_failed": lambda msg: f"Download failed: {msg}",
    "sync_failed": lambda msg: f"Sync failed: {msg}",
    "list_failed": lambda msg: f"List files failed: {msg}",
    "error_details": lambda: "Error details",
    "more_errors": lambda count: f"...and {count} more errors",
    "direction_upload": lambda: "Upload",
    "direction_download": lambda: "Download",
    "auto_sync_started": lambda minutes: (
        f"Auto sync every {minutes} minute(s). Press Ctrl+C to stop."
    ),
}

_ZH: dict[str, MessageFormatter] = {
    "config_first": lambda missing: (
        f"请先配置 R2 存储信息（缺少: {', '.join(missing)}）"
    ),
    "sync_folder_not_exist": lambda path: f"同步文件夹不存在: {path}",
    "conn_success": lambda count: (
        f"连接成功！存储桶中有 {count} 个 .md 文件"
    ),
    "conn_failed": lambda msg: f"连接失败: {msg}",
    "upload_complete": lambda ok, fail: (
        f"上传完成: {ok} 个成功, {fail} 个失败"
    ),
    "download_complete": lambda ok, fail: (
        f"下载完成: {ok} 个成功, {fail} 个失败"
    ),
    "sync_complete": lambda up, down, fail: (
        f"同步完成: 上传 {up} 个, 下载 {down} 个, {fail} 个失败"
    ),
    "plan_summary": lambda up, down: (
        f"同步计划: 待上传 {up} 个, 待下载 {down} 个"
    ),
    "plan_empty": lambda: "所有文件均已同步",
    "upload_failed": lambda msg: f"上传失败: {msg}",
    "download_failed": lambda msg: f"下载失败: {msg}",
    "sync_failed": lambda msg: f"同步失败: {msg}",
    "list_failed": lambda msg: f"列出文件失败: {msg}",
    "error_details": lambda: "错误详情",
    "more_errors": lambda count: f"...还有 {count} 个错误",
    "direction_upload": lambda: "上传",
    "direction_download": lambda: "下载",
    "auto_sync_started": lambda minutes: (
        f"每 {minutes} 分钟自动同步一次。按 Ctrl+C 停止。"
    ),
}

CATALOGS: dict[str, dict[str, MessageFormatter]] = {
    "en": _EN,
    "zh": _ZH,
}


def get_catalog(language: str | None) -> dict[str, MessageFormatter]:
    """Return the catalog for *language*, or English if unknown."""
    return CATALOGS.get((language or "").lower(), CATALOGS[DEFAULT_LANGUAGE])


def message(key: str, language: str | None = None, *args) -> str:
    """Format message *key* in *language* with *args*.

    Raises:
        KeyError: If *key* is not a known message.
    """
    return get_catalog(language)[key](*args)
