"""
Accessor for the daemon's on-disk configuration document

The document is owned by the daemon; only the fields the testbed rewrites
are exposed here. Unknown fields are preserved as-is and key order is kept
so that rewriting an unchanged document yields identical bytes.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from ..errors import ConfigurationError


class RepoConfig:
    """Typed view over a daemon configuration document"""

    def __init__(self, data: Dict[str, Any]):
        self.data = data

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'RepoConfig':
        path = Path(path)
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"daemon config not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"daemon config {path} is not valid JSON: {e}") from e
        return cls(data)

    def write(self, path: Union[str, Path]):
        with open(path, 'w') as f:
            f.write(self.dumps())

    def dumps(self) -> str:
        return json.dumps(self.data, indent=2)

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.data.get(name)
        if section is None:
            section = self.data[name] = {}
        return section

    @property
    def peer_id(self) -> str:
        try:
            return self.data['Identity']['PeerID']
        except KeyError as e:
            raise ConfigurationError("daemon config has no Identity.PeerID") from e

    @property
    def swarm(self) -> List[str]:
        return list(self._section('Addresses').get('Swarm') or [])

    @swarm.setter
    def swarm(self, addrs: List[str]):
        self._section('Addresses')['Swarm'] = list(addrs)

    @property
    def api(self) -> str:
        return self._section('Addresses').get('API', '')

    @api.setter
    def api(self, addr: str):
        self._section('Addresses')['API'] = addr

    @property
    def gateway(self) -> str:
        return self._section('Addresses').get('Gateway', '')

    @gateway.setter
    def gateway(self, addr: str):
        self._section('Addresses')['Gateway'] = addr

    @property
    def bootstrap(self) -> List[str]:
        return list(self.data.get('Bootstrap') or [])

    @bootstrap.setter
    def bootstrap(self, addrs: List[str]):
        self.data['Bootstrap'] = list(addrs) if addrs else None

    @property
    def mdns(self) -> bool:
        return bool(self._section('Discovery').get('MDNS', {}).get('Enabled', False))

    @mdns.setter
    def mdns(self, enabled: bool):
        discovery = self._section('Discovery')
        discovery.setdefault('MDNS', {})['Enabled'] = enabled
