# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""LSP server configuration and client settings.

Defines the supported language servers, language detection helpers, and
the user-facing settings (timeouts, client identity, diagnostic visibility).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


@dataclass
class LSPServerConfig:
    """Configuration for a language server."""

    name: str  # Human-readable name
    language_id: str  # LSP language identifier
    file_extensions: List[str]  # File extensions this server handles
    command: List[str]  # Command to start the server
    args: List[str] = field(default_factory=list)  # Additional arguments
    initialization_options: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    root_patterns: List[str] = field(default_factory=list)  # Files indicating project root
    install_command: Optional[str] = None  # How to install the server


LANGUAGE_SERVERS: Dict[str, LSPServerConfig] = {
    "typescript": LSPServerConfig(
        name="TypeScript Language Server",
        language_id="typescript",
        file_extensions=[".ts", ".tsx"],
        command=["typescript-language-server"],
        args=["--stdio"],
        root_patterns=["tsconfig.json", "package.json"],
        install_command="npm install -g typescript-language-server typescript",
    ),
    "javascript": LSPServerConfig(
        name="TypeScript Language Server (JavaScript)",
        language_id="javascript",
        file_extensions=[".js", ".jsx", ".mjs", ".cjs"],
        command=["typescript-language-server"],
        args=["--stdio"],
        root_patterns=["jsconfig.json", "package.json"],
        install_command="npm install -g typescript-language-server typescript",
    ),
    "rust": LSPServerConfig(
        name="rust-analyzer",
        language_id="rust",
        file_extensions=[".rs"],
        command=["rust-analyzer"],
        root_patterns=["Cargo.toml"],
        install_command="rustup component add rust-analyzer",
    ),
    "python": LSPServerConfig(
        name="Pyright",
        language_id="python",
        file_extensions=[".py", ".pyi"],
        command=["pyright-langserver"],
        args=["--stdio"],
        root_patterns=["pyproject.toml", "setup.py", "requirements.txt"],
        install_command="pip install pyright",
    ),
    "go": LSPServerConfig(
        name="gopls",
        language_id="go",
        file_extensions=[".go"],
        command=["gopls"],
        root_patterns=["go.mod", "go.sum"],
        install_command="go install golang.org/x/tools/gopls@latest",
    ),
    "c": LSPServerConfig(
        name="clangd",
        language_id="c",
        file_extensions=[".c", ".h"],
        command=["clangd"],
        root_patterns=["compile_commands.json", "CMakeLists.txt", "Makefile"],
        install_command="brew install llvm",
    ),
    "cpp": LSPServerConfig(
        name="clangd",
        language_id="cpp",
        file_extensions=[".cpp", ".cc", ".cxx", ".hpp", ".hh", ".hxx"],
        command=["clangd"],
        root_patterns=["compile_commands.json", "CMakeLists.txt", "Makefile"],
        install_command="brew install llvm",
    ),
}

# Editor language ids that map onto a server language
_EDITOR_LANGUAGE_MAP = {
    "typescript": "typescript",
    "typescriptreact": "typescript",
    "javascript": "javascript",
    "javascriptreact": "javascript",
    "rust": "rust",
    "python": "python",
    "go": "go",
    "c": "c",
    "cpp": "cpp",
}

_DISPLAY_NAMES = {
    "typescript": "TypeScript",
    "javascript": "JavaScript",
    "typescriptreact": "TypeScript React",
    "javascriptreact": "JavaScript React",
    "rust": "Rust",
    "python": "Python",
    "go": "Go",
    "c": "C",
    "cpp": "C++",
}


def get_language_for_extension(extension: str) -> Optional[str]:
    """Get the server language for a file extension (with or without dot)."""
    ext = extension if extension.startswith(".") else f".{extension}"
    ext = ext.lower()
    for language, config in LANGUAGE_SERVERS.items():
        if ext in config.file_extensions:
            return language
    return None


def get_language_for_path(file_path: str) -> Optional[str]:
    """Get the server language for a file path.

    Args:
        file_path: Path to the file

    Returns:
        Language key of ``LANGUAGE_SERVERS`` or None
    """
    suffix = PurePath(file_path.replace("\\", "/")).suffix
    if not suffix:
        return None
    return get_language_for_extension(suffix)


def get_server_config(language: str) -> Optional[LSPServerConfig]:
    return LANGUAGE_SERVERS.get(language)


def has_lsp_support(language: str) -> bool:
    return language in LANGUAGE_SERVERS


def get_supported_languages() -> List[str]:
    return list(LANGUAGE_SERVERS.keys())


def editor_to_lsp_language(editor_language: str) -> Optional[str]:
    """Map an editor language id such as ``typescriptreact`` to a server language."""
    return _EDITOR_LANGUAGE_MAP.get(editor_language)


def get_language_display_name(language: str) -> str:
    return _DISPLAY_NAMES.get(language, language)


def find_project_root(file_path: str, language: str) -> Optional[str]:
    """Walk up from a file to the nearest directory holding a root pattern.

    Args:
        file_path: Path to a file inside the project
        language: Server language whose root patterns are used

    Returns:
        Project root directory, or None if no marker file is found
    """
    config = get_server_config(language)
    if not config or not config.root_patterns:
        return None

    for directory in Path(file_path).resolve().parents:
        for pattern in config.root_patterns:
            if (directory / pattern).exists():
                return str(directory)
    return None


class DiagnosticVisibility(BaseModel):
    """Which diagnostic severities are kept when diagnostics are pushed."""

    show_diagnostics: bool = Field(default=True, description="Show diagnostics at all")
    show_errors: bool = Field(default=True, description="Keep error diagnostics")
    show_warnings: bool = Field(default=True, description="Keep warning diagnostics")
    show_info: bool = Field(default=True, description="Keep informational diagnostics")
    show_hints: bool = Field(default=False, description="Keep hint diagnostics")

    def allows(self, severity: str) -> bool:
        """Check whether a severity name passes the filter."""
        if severity == "error":
            return self.show_errors
        if severity == "warning":
            return self.show_warnings
        if severity == "info":
            return self.show_info
        if severity == "hint":
            return self.show_hints
        return True


class LSPSettings(BaseModel):
    """Client-side settings for the session engine."""

    enabled: bool = Field(default=True, description="Enable language server integration")
    request_timeout: float = Field(
        default=30.0, gt=0, description="Seconds to wait for a response to a request"
    )
    shutdown_timeout: float = Field(
        default=5.0, gt=0, description="Seconds to wait for the shutdown response"
    )
    client_name: str = Field(default="polyglot-lsp", description="Client name sent on initialize")
    client_version: str = Field(default="1.0.0", description="Client version sent on initialize")
    diagnostics: DiagnosticVisibility = Field(default_factory=DiagnosticVisibility)

    @classmethod
    def from_yaml(cls, path: Path) -> "LSPSettings":
        """Load settings from a YAML file.

        Example format:
        ```yaml
        request_timeout: 10
        diagnostics:
          show_hints: true
        ```

        Missing files yield default settings.
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No LSP settings file at {path}, using defaults")
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"LSP settings in {path} must be a mapping")

        logger.debug(f"Loaded LSP settings from {path}")
        return cls.model_validate(data)

    def to_yaml(self, path: Path) -> None:
        """Write settings to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)
