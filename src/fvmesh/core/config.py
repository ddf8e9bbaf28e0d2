"""Configuration management for mesh assembly and refinement."""

import json
from pathlib import Path
from typing import Dict, List, Any, Optional, Union
from dataclasses import dataclass, field, asdict

import yaml


@dataclass
class MeshConfig:
    """Configuration for mesh assembly."""
    index_base: int = 0  # 0 or 1, base of the incoming index arrays
    patch_types: Dict[str, str] = field(default_factory=dict)  # patch name -> type override
    validate: bool = True

    def __post_init__(self):
        if self.index_base not in (0, 1):
            raise ValueError(f"index_base must be 0 or 1, got {self.index_base}")


@dataclass
class RefinementConfig:
    """Configuration for point-addition refinement."""
    empty_patch_types: List[str] = field(default_factory=lambda: ["empty"])
    thickness_axis: Optional[int] = None  # None: dominant component of the empty face normal
    match_tolerance: float = 0.0  # 0.0: exact coordinate equality
    verify_ledger: bool = True
    verify_each_step: bool = False
    owner_lower: bool = True  # renumber internal faces so owner < neighbour

    def __post_init__(self):
        if self.thickness_axis is not None and self.thickness_axis not in (0, 1, 2):
            raise ValueError(f"thickness_axis must be 0, 1 or 2, got {self.thickness_axis}")
        if self.match_tolerance < 0.0:
            raise ValueError("match_tolerance must be non-negative")


@dataclass
class EngineConfig:
    """Main configuration."""
    mesh: MeshConfig = field(default_factory=MeshConfig)
    refinement: RefinementConfig = field(default_factory=RefinementConfig)
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'EngineConfig':
        """Load configuration from YAML or JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                data = yaml.safe_load(f) or {}
            elif config_path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Create configuration from dictionary."""
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")
        for section in ('mesh', 'refinement'):
            if not isinstance(data.get(section, {}), dict):
                raise ValueError(f"Configuration section '{section}' must be a mapping")

        mesh = MeshConfig(**data.get('mesh', {}))
        refinement = RefinementConfig(**data.get('refinement', {}))

        config_data = {k: v for k, v in data.items() if k not in ('mesh', 'refinement')}
        return cls(mesh=mesh, refinement=refinement, **config_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def save(self, config_path: Union[str, Path]) -> None:
        """Save configuration to file."""
        config_path = Path(config_path)

        with open(config_path, 'w') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
            elif config_path.suffix.lower() == '.json':
                json.dump(self.to_dict(), f, indent=2)
            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")
