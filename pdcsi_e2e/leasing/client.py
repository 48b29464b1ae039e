import json
import os
import threading
from typing import Dict, Optional
from urllib.parse import urlencode

import urllib3

from pdcsi_e2e.config import DEFAULT_BOSKOS_URL
from pdcsi_e2e.exceptions import BoskosException, BoskosReleaseException
from pdcsi_e2e.leasing.resource import Resource
from pdcsi_e2e.utils import logger


class BoskosClient:
    """HTTP client for the Boskos leasing service.

    A single client is shared between the acquiring thread and the heartbeat thread;
    urllib3's PoolManager is thread safe and the held resource table is locked.
    """

    def __init__(self, owner: Optional[str] = None, url: str = DEFAULT_BOSKOS_URL, http_pool=None, timeout=30.0):
        self.owner = owner if owner is not None else os.environ.get("JOB_NAME", "")
        if not self.owner:
            raise ValueError("Boskos client requires an owner, set JOB_NAME")
        self.url = url.rstrip("/")
        self.http_pool = http_pool or urllib3.PoolManager(timeout=urllib3.Timeout(total=timeout))
        self._resources: Dict[str, Resource] = {}
        self._lock = threading.Lock()

    def __repr__(self):
        return f"BoskosClient(owner={self.owner}, url={self.url})"

    def _post(self, path: str, fields: Dict[str, str], body: Optional[bytes] = None):
        query = urlencode(fields)
        url = f"{self.url}/{path}?{query}"
        try:
            return self.http_pool.request(
                "POST", url, body=body, headers={"Content-Type": "application/json"} if body is not None else None
            )
        except urllib3.exceptions.HTTPError as e:
            raise BoskosException(f"POST {url} failed: {e}") from e

    @staticmethod
    def _error(resp, action: str) -> BoskosException:
        body = resp.data.decode("utf-8", errors="replace").strip() if resp.data else ""
        return BoskosException(f"{action} failed with status {resp.status}: {body}", status=resp.status)

    def acquire(self, rtype: str, state: str, dest: str) -> Optional[Resource]:
        """Move a resource of rtype from state to dest. Returns None if none is available."""
        resp = self._post("acquire", {"type": rtype, "state": state, "dest": dest, "owner": self.owner})
        if resp.status == 404:
            return None
        if resp.status != 200:
            raise self._error(resp, f"acquire {rtype}")
        try:
            resource = Resource.from_dict(json.loads(resp.data.decode("utf-8")))
        except (ValueError, UnicodeDecodeError) as e:
            raise BoskosException(f"acquire {rtype} returned an invalid resource: {e}") from e
        with self._lock:
            self._resources[resource.name] = resource
        logger.debug(f"[Boskos] acquired {resource}")
        return resource

    def update_one(self, name: str, state: str, user_data: Optional[Dict] = None):
        """Refresh the lease on name, keeping it in state."""
        body = json.dumps(user_data).encode("utf-8") if user_data is not None else None
        resp = self._post("update", {"name": name, "owner": self.owner, "state": state}, body=body)
        if resp.status != 200:
            raise self._error(resp, f"update {name}")
        with self._lock:
            if name in self._resources:
                self._resources[name].state = state

    def release_one(self, name: str, dest: str):
        resp = self._post("release", {"name": name, "dest": dest, "owner": self.owner})
        if resp.status != 200:
            raise self._error(resp, f"release {name}")
        with self._lock:
            self._resources.pop(name, None)
        logger.debug(f"[Boskos] released {name} to {dest}")

    def release_all(self, dest: str):
        with self._lock:
            names = list(self._resources.keys())
        errors = []
        for name in names:
            try:
                self.release_one(name, dest)
            except BoskosException as e:
                errors.append(str(e))
        if errors:
            raise BoskosReleaseException(f"failed to release {len(errors)} of {len(names)} resources", errors)

    def has_resource(self) -> bool:
        with self._lock:
            return len(self._resources) > 0
