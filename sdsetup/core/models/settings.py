"""
Install settings — every constant the installer depends on.

Defaults reproduce the stock install. Any field can be overridden from
``sdsetup.yml`` (see ``core/config/loader.py``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_APT_PACKAGES = [
    "git", "wget", "curl", "ca-certificates",
    "build-essential", "pkg-config",
    "libssl-dev", "libffi-dev",
    "zlib1g-dev", "libjpeg-dev", "libtiff5-dev", "libopenjp2-7-dev",
    "libpng-dev", "libfreetype6-dev", "liblcms2-dev", "libwebp-dev",
    "libavif-dev",
    "libgl1", "libglib2.0-0",
    "rustc", "cargo",
    "python3", "python3-venv", "python3-pip",
]

DEFAULT_LOCK_FILES = [
    "/var/lib/dpkg/lock-frontend",
    "/var/lib/apt/lists/lock",
    "/var/cache/apt/archives/lock",
]


class AssetSpec(BaseModel):
    """A large binary asset: where it comes from and where it lands.

    ``path`` is relative to the application directory unless absolute.
    """

    url: str
    path: str


DEFAULT_ASSETS = [
    AssetSpec(
        url=(
            "https://huggingface.co/cyberdelia/CyberRealistic/resolve/main/"
            "CyberRealistic_V7.0_FP16.safetensors"
        ),
        path="models/Stable-diffusion/CyberRealistic_V7.0_FP16.safetensors",
    ),
    AssetSpec(
        url=(
            "https://huggingface.co/SG161222/Realistic_Vision_V5.1_noVAE/resolve/main/"
            "Realistic_Vision_V5.1-inpainting.safetensors"
        ),
        path="models/Stable-diffusion/Realistic_Vision_V5.1-inpainting.safetensors",
    ),
]


class InstallSettings(BaseModel):
    """Installer configuration — loaded from sdsetup.yml or defaults."""

    model_config = ConfigDict(extra="forbid")

    # ── Layout (relative to the home directory) ─────────────────
    app_dir_name: str = "stable-diffusion-webui"
    env_dir_name: str = "stable-diffusion-env"
    launcher_name: str = "run_sd.sh"
    remover_name: str = "remove.sh"
    log_prefix: str = "sd_install"

    # ── Preflight ───────────────────────────────────────────────
    required_commands: list[str] = Field(
        default_factory=lambda: ["sudo", "curl", "git", "tee"],
    )
    probe_url: str = "https://pypi.org/simple/pip/"
    probe_timeout: float = 8.0

    # ── System packages ─────────────────────────────────────────
    apt_packages: list[str] = Field(default_factory=lambda: list(DEFAULT_APT_PACKAGES))
    apt_upgrade: bool = True
    lock_files: list[str] = Field(default_factory=lambda: list(DEFAULT_LOCK_FILES))
    lock_poll_interval: float = 2.0
    lock_max_polls: int = 120

    # ── Runtime / environment ───────────────────────────────────
    python_version: str = "3.10"
    uv_installer_url: str = "https://astral.sh/uv/install.sh"

    # ── Source ──────────────────────────────────────────────────
    repo_url: str = "https://github.com/AUTOMATIC1111/stable-diffusion-webui.git"

    # ── Patch ───────────────────────────────────────────────────
    legacy_urls: list[str] = Field(
        default_factory=lambda: [
            "https://github.com/Stability-AI/stablediffusion.git",
            "https://github.com/Stability-AI/stablediffusion",
        ],
    )
    replacement_url: str = "https://github.com/comp6062/Stability-AI-stablediffusion.git"
    stale_repo_dir: str = "repositories/stable-diffusion-stability-ai"

    # ── Python dependencies ─────────────────────────────────────
    torch_packages: list[str] = Field(
        default_factory=lambda: ["torch", "torchvision", "torchaudio"],
    )
    torch_index_url: str = "https://download.pytorch.org/whl/cpu"
    requirements_file: str = "requirements.txt"

    # ── Assets ──────────────────────────────────────────────────
    download_models: bool = True
    assets: list[AssetSpec] = Field(default_factory=lambda: list(DEFAULT_ASSETS))

    # ── Launcher ────────────────────────────────────────────────
    launch_entrypoint: str = "launch.py"
    launch_flags: list[str] = Field(
        default_factory=lambda: ["--skip-torch-cuda-test", "--no-half", "--listen"],
    )

    # ── Failure reporting ───────────────────────────────────────
    log_tail_lines: int = 120

    @field_validator("legacy_urls")
    @classmethod
    def _longest_first(cls, urls: list[str]) -> list[str]:
        # A shorter variant is a prefix of a longer one; substitute longest first.
        if not urls:
            raise ValueError("at least one legacy URL is required")
        return sorted(dict.fromkeys(urls), key=len, reverse=True)

    @field_validator("app_dir_name", "env_dir_name")
    @classmethod
    def _plain_name(cls, name: str) -> str:
        if not name or "/" in name or name in (".", ".."):
            raise ValueError(f"must be a plain directory name, got {name!r}")
        return name
