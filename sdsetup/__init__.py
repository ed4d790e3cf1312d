"""sdsetup — unattended Stable Diffusion WebUI installer."""

__version__ = "0.1.0"
