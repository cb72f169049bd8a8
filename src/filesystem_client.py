"""Data Lake Store file system client (WebHDFS-compatible REST API).

Addresses `https://{account}.azuredatalakestore.net/webhdfs/v1/{path}` with a Data Lake audience
credential. Only the read-mostly operations the samples need are exposed.
"""

from typing import Any, Dict, List

import requests

from .auth import BearerCredential
from .rest_client import RestClient


class FileSystemClient(RestClient):
    API_VERSION = "2018-09-01"

    def __init__(self, credential: BearerCredential, dns_suffix: str = "azuredatalakestore.net"):
        super().__init__(credential)
        self.dns_suffix = dns_suffix

    def _url(self, account_name: str, path: str) -> str:
        # Encode each segment to handle spaces/special characters.
        enc_path = "/".join(requests.utils.quote(p, safe="") for p in path.strip("/").split("/") if p)
        return f"https://{account_name}.{self.dns_suffix}/webhdfs/v1/{enc_path}"

    def list_status(self, account_name: str, path: str = "/") -> List[Dict[str, Any]]:
        """List the entries of a directory (FileStatus objects)."""
        data = self._get(self._url(account_name, path), params={"op": "LISTSTATUS"})
        return data.get("FileStatuses", {}).get("FileStatus", [])

    def get_file_status(self, account_name: str, path: str) -> Dict[str, Any]:
        data = self._get(self._url(account_name, path), params={"op": "GETFILESTATUS"})
        return data.get("FileStatus", {})

    def mkdirs(self, account_name: str, path: str) -> bool:
        data = self._request("PUT", self._url(account_name, path), params={"op": "MKDIRS"}).json()
        return bool(data.get("boolean"))

    def open(self, account_name: str, path: str) -> bytes:
        """Return the full content of a file."""
        r = self._request("GET", self._url(account_name, path), params={"op": "OPEN", "read": "true"})
        return r.content
