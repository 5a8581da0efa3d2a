"""Locating and downloading the Electrum executable."""

from electrumd.adapters.exe.download import download_exe, downloaded_exe_path
from electrumd.adapters.exe.locator import exe_path, resolve_exe_path

__all__ = ["download_exe", "downloaded_exe_path", "exe_path", "resolve_exe_path"]
