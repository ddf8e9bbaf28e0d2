"""Core configuration."""

from .config import EngineConfig, MeshConfig, RefinementConfig

__all__ = ['EngineConfig', 'MeshConfig', 'RefinementConfig']
