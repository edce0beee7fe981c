from dataclasses import dataclass, field
from typing import Dict, List

from safeops.model.registry import Registry


@dataclass
class BackupSession:
    """State owned by one backup/rollback workflow."""

    id: str
    registries: List[str] = field(default_factory=list)  # registry names, in backup order
    backup_paths: Dict[str, str] = field(default_factory=dict)  # name -> backup location
    targets: Dict[str, Registry] = field(default_factory=dict)  # name -> classified original path

    def track(self, name: str, target: Registry, backup_path: str) -> None:
        if name not in self.registries:
            self.registries.append(name)
        self.backup_paths[name] = backup_path
        self.targets[name] = target
