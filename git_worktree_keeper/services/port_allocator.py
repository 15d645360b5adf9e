"""Persisted, collision-free port assignment for worktrees."""
import json
import shutil
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from git_worktree_keeper.constants import CREATED_KEY, MAX_PORT, PORT_MAP_FILE, PORT_PROBE_COMMANDS
from git_worktree_keeper.exceptions import PortExhaustedError, PortMapCorruptError, UnknownServiceError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.ports import PortAssignment, PortRange

logger = get_logger(__name__)


class PortAllocator:
    """Manages the port map stored at `<base dir>/.port-map.json`.

    The map is read once on construction. Every mutation rewrites the whole
    file before returning, so the file stays authoritative for the next
    process. There is no locking: two concurrent writers can lose an update.
    """

    def __init__(self, port_map_path: Union[str, Path]):
        """Initialize the allocator and load (or create) the port map.

        Args:
            port_map_path: Location of the JSON port map

        Raises:
            PortMapCorruptError: If the existing file is not a JSON object
        """
        self.port_map_path = Path(port_map_path)
        self.port_map: Dict[str, Dict[str, Union[int, str]]] = {}
        self.load()

    @classmethod
    def for_base_dir(cls, base_dir: Union[str, Path]) -> "PortAllocator":
        return cls(Path(base_dir) / PORT_MAP_FILE)

    def load(self) -> None:
        """Read the port map, creating an empty one if the file is missing.

        A malformed file is never reset: the parse error propagates so the
        operator can repair it.
        """
        try:
            with open(self.port_map_path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug(f"No port map at {self.port_map_path}, starting empty")
            self.port_map = {}
            self.save()
            return
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PortMapCorruptError(str(self.port_map_path), str(e)) from e

        if not isinstance(data, dict):
            raise PortMapCorruptError(str(self.port_map_path), "top-level value must be an object")
        self.port_map = data

    def save(self) -> None:
        """Write the full map to disk."""
        self.port_map_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.port_map_path, "w", encoding="utf-8") as f:
            json.dump(self.port_map, f, indent=2)
            f.write("\n")

    @staticmethod
    def _service_ports(entry: Mapping) -> Dict[str, int]:
        """Numeric service fields of one entry; `created` and unknown values skipped."""
        if not isinstance(entry, Mapping):
            return {}
        return {
            key: value
            for key, value in entry.items()
            if key != CREATED_KEY and isinstance(value, int) and not isinstance(value, bool)
        }

    def get_all_used_ports(self) -> List[int]:
        """Every assigned port across all worktrees and services.

        Services share one namespace: a port held by any service of any
        worktree is unavailable to every other service.
        """
        ports: List[int] = []
        for entry in self.port_map.values():
            ports.extend(self._service_ports(entry).values())
        return ports

    @staticmethod
    def find_available_port(port_range: PortRange, used_ports: Iterable[int]) -> int:
        """First candidate of port_range not in used_ports.

        Raises:
            PortExhaustedError: If the scan passes port 65535
        """
        used = set(used_ports)
        port = port_range.start
        while port in used:
            port += port_range.increment
            if port > MAX_PORT:
                raise PortExhaustedError()
        if port > MAX_PORT:
            raise PortExhaustedError()
        return port

    def assign_ports(
        self,
        worktree_name: str,
        services: Iterable[str],
        port_ranges: Mapping[str, PortRange],
    ) -> Dict[str, int]:
        """Assign one port per service to worktree_name and persist.

        Services are processed in the given order. Ports chosen earlier in
        the same call are excluded for later services.

        Raises:
            UnknownServiceError: If a service has no range
            PortExhaustedError: If a range has no free candidate; the map is left untouched
        """
        used = set(self.get_all_used_ports())
        assignments: Dict[str, int] = {}

        for service in services:
            port_range = port_ranges.get(service)
            if port_range is None:
                raise UnknownServiceError(service)
            try:
                port = self.find_available_port(port_range, used)
            except PortExhaustedError:
                raise PortExhaustedError(service, port_range.start)
            assignments[service] = port
            used.add(port)
            logger.debug(f"Picked port {port} for {worktree_name}/{service}")

        self.port_map[worktree_name] = {
            **assignments,
            CREATED_KEY: datetime.now(timezone.utc).isoformat(),
        }
        self.save()
        logger.info(f"Assigned ports to {worktree_name}: {self.format_port_display(assignments)}")
        return assignments

    def reassign_ports(
        self,
        worktree_name: str,
        services: Iterable[str],
        port_ranges: Mapping[str, PortRange],
    ) -> Dict[str, int]:
        """Move the listed services of an existing entry to fresh ports.

        The entry's other services and its creation timestamp are kept.
        Returns the full port set of the worktree afterwards.
        """
        entry = self.port_map.get(worktree_name)
        if entry is None:
            raise KeyError(worktree_name)

        used = set(self.get_all_used_ports())
        updated = dict(entry)
        for service in services:
            port_range = port_ranges.get(service)
            if port_range is None:
                raise UnknownServiceError(service)
            try:
                port = self.find_available_port(port_range, used)
            except PortExhaustedError:
                raise PortExhaustedError(service, port_range.start)
            updated[service] = port
            used.add(port)

        self.port_map[worktree_name] = updated
        self.save()
        return self._service_ports(updated)

    def release_ports(self, worktree_name: str) -> bool:
        """Drop a worktree's entry. Releasing an absent entry is a no-op.

        Returns:
            True if an entry was removed
        """
        if worktree_name not in self.port_map:
            return False
        del self.port_map[worktree_name]
        self.save()
        logger.info(f"Released ports of {worktree_name}")
        return True

    def get_ports(self, worktree_name: str) -> Optional[Dict[str, int]]:
        entry = self.port_map.get(worktree_name)
        if entry is None:
            return None
        return self._service_ports(entry)

    def get_assignment(self, worktree_name: str) -> Optional[PortAssignment]:
        entry = self.port_map.get(worktree_name)
        if entry is None:
            return None
        return PortAssignment(
            worktree=worktree_name,
            ports=self._service_ports(entry),
            created=str(entry.get(CREATED_KEY, "")) if isinstance(entry, Mapping) else "",
        )

    def get_all_ports(self) -> Dict[str, Dict[str, int]]:
        return {name: self._service_ports(entry) for name, entry in self.port_map.items()}

    @staticmethod
    def _probe_command(port: int) -> Optional[List[str]]:
        if sys.platform.startswith("win"):
            return list(PORT_PROBE_COMMANDS["windows"])
        if sys.platform.startswith(("linux", "darwin")):
            return [part.format(port=port) for part in PORT_PROBE_COMMANDS["posix"]]
        return None

    def is_port_in_use(self, port: int) -> bool:
        """Best-effort check for a listening socket on port.

        Uses lsof on Linux/macOS and netstat on Windows. Any failure to run
        the tool counts as "not in use"; this only feeds advisory output.
        """
        command = self._probe_command(port)
        if command is None or shutil.which(command[0]) is None:
            return False
        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=5)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Port probe for {port} failed: {e}")
            return False

        if command[0] == "netstat":
            needle = f":{port} "
            return any(needle in line and "LISTEN" in line for line in result.stdout.splitlines())
        return result.returncode == 0 and bool(result.stdout.strip())

    def get_running_ports(self, worktree_name: str) -> Dict[str, int]:
        """Subset of a worktree's ports that currently have a listener."""
        ports = self.get_ports(worktree_name) or {}
        return {service: port for service, port in ports.items() if self.is_port_in_use(port)}

    @staticmethod
    def format_port_display(ports: Optional[Mapping[str, int]]) -> str:
        if not ports:
            return "No ports assigned"
        return " ".join(f"{service}:{port}" for service, port in ports.items())
