"""
Viewer Deploy Module - Black Box Interface

Purpose: Build the viewer image and inject the E-STAP endpoint and DB credentials
Interface: ViewerDeployer.deploy(), ViewerDeployer.configure(), build_viewer_env()
Hidden: ImageStream/BuildConfig handling, route/service creation, env masking
"""

from .configurator import (
    ENV_KEYS,
    ViewerDeployer,
    ViewerDeployment,
    build_viewer_env,
    mask_env_listing,
)

__all__ = [
    "ENV_KEYS",
    "ViewerDeployer",
    "ViewerDeployment",
    "build_viewer_env",
    "mask_env_listing",
]
