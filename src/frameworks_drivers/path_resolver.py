"""
Ordered strategies for locating the llama-server binary and the model file.

Each strategy returns a path or None. PathResolver tries them in order and
stops at the first hit.
"""
import os
import platform
import shutil
import stat
from pathlib import Path
from typing import Optional, Sequence

from src.shared.logger import Logger

logger = Logger.get(__name__)


class PathStrategy:
    name = "base"

    def resolve(self) -> Optional[str]:
        raise NotImplementedError


class ExplicitBinaryStrategy(PathStrategy):
    name = "explicit"

    def __init__(self, binary_path: Optional[str]):
        self.binary_path = binary_path

    def resolve(self) -> Optional[str]:
        if not self.binary_path:
            return None
        path = Path(self.binary_path).expanduser()
        if path.is_file():
            return str(path)
        logger.warning(f"Configured llama binary not found: {path}")
        return None


class BundledBinaryStrategy(PathStrategy):
    """`<plugin_dir>/binaries/<platform>-<arch>/llama-server[.exe]`"""

    name = "bundled"

    def __init__(self, plugin_dir: Optional[str]):
        self.plugin_dir = plugin_dir

    @staticmethod
    def platform_dir() -> str:
        system = platform.system().lower()
        machine = platform.machine().lower()
        arch = {"x86_64": "x64", "amd64": "x64", "aarch64": "arm64"}.get(machine, machine)
        return f"{system}-{arch}"

    def resolve(self) -> Optional[str]:
        if not self.plugin_dir:
            return None
        binary_name = "llama-server.exe" if os.name == "nt" else "llama-server"
        path = Path(self.plugin_dir).expanduser() / "binaries" / self.platform_dir() / binary_name
        if not path.is_file():
            return None
        if os.name != "nt" and not os.access(path, os.X_OK):
            try:
                path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except OSError as e:
                logger.warning(f"Could not make bundled binary executable: {e}")
                return None
        return str(path)


class PathLookupBinaryStrategy(PathStrategy):
    name = "path"

    def __init__(self, names: Sequence[str] = ("llama-server", "server")):
        self.names = names

    def resolve(self) -> Optional[str]:
        for name in self.names:
            found = shutil.which(name)
            if found:
                return found
        return None


class ExplicitModelStrategy(PathStrategy):
    name = "explicit"

    def __init__(self, model_path: Optional[str]):
        self.model_path = model_path

    def resolve(self) -> Optional[str]:
        if not self.model_path:
            return None
        path = Path(self.model_path).expanduser()
        if not path.is_file():
            logger.warning(f"Configured model file not found: {path}")
            return None
        if path.suffix.lower() != ".gguf":
            logger.warning(f"Configured model path doesn't end with .gguf: {path}")
            return None
        return str(path)


class DefaultModelLocationStrategy(PathStrategy):
    name = "default"

    def __init__(self, models_dir: str, filename: Optional[str]):
        self.models_dir = models_dir
        self.filename = filename

    def resolve(self) -> Optional[str]:
        if not self.filename:
            return None
        path = Path(self.models_dir).expanduser() / self.filename
        return str(path) if path.is_file() else None


class ModelScanStrategy(PathStrategy):
    """Scan the models directory for a GGUF whose name contains the model's token."""

    name = "scan"

    def __init__(self, models_dir: str, scan_token: Optional[str]):
        self.models_dir = models_dir
        self.scan_token = scan_token

    def resolve(self) -> Optional[str]:
        if not self.scan_token:
            return None
        directory = Path(self.models_dir).expanduser()
        if not directory.is_dir():
            return None
        token = self.scan_token.lower()
        for candidate in sorted(directory.glob("*.gguf")):
            if token in candidate.name.lower() and candidate.is_file():
                logger.info(f"Found model by directory scan: {candidate}")
                return str(candidate)
        return None


class PathResolver:
    def __init__(self, binary_strategies: Sequence[PathStrategy], model_strategies: Sequence[PathStrategy]):
        self.binary_strategies = list(binary_strategies)
        self.model_strategies = list(model_strategies)

    @staticmethod
    def _first(strategies: Sequence[PathStrategy], kind: str) -> Optional[str]:
        for strategy in strategies:
            resolved = strategy.resolve()
            if resolved:
                logger.debug(f"Resolved {kind} via {strategy.name} strategy: {resolved}")
                return resolved
        return None

    def resolve_binary(self) -> Optional[str]:
        return self._first(self.binary_strategies, "binary")

    def resolve_model(self) -> Optional[str]:
        return self._first(self.model_strategies, "model")

    @classmethod
    def from_config(cls, llama_config, model_info=None) -> "PathResolver":
        filename = model_info.filename if model_info else None
        scan_token = model_info.scan_token if model_info else None
        return cls(
            binary_strategies=[
                ExplicitBinaryStrategy(llama_config.binary_path),
                BundledBinaryStrategy(llama_config.plugin_dir),
                PathLookupBinaryStrategy(),
            ],
            model_strategies=[
                ExplicitModelStrategy(llama_config.model_path),
                DefaultModelLocationStrategy(llama_config.models_dir, filename),
                ModelScanStrategy(llama_config.models_dir, scan_token),
            ],
        )
