"""Release hosting backends.

``ReleaseHost`` is the narrow interface the publisher needs from a hosting
platform: upsert a release by tag, and list/upload/rename/delete its
assets.

Backends:

- ``GitHubReleaseHost`` — GitHub REST API over ``httpx``, bearer-token auth.
- ``InMemoryReleaseHost`` — dictionary-backed, for dry runs and tests.
"""

from __future__ import annotations

import itertools
import logging
from typing import Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)


class ReleaseHostError(RuntimeError):
    """Raised when the hosting platform rejects or fails a request."""


@runtime_checkable
class ReleaseHost(Protocol):
    """Protocol for release hosting platforms."""

    def create_or_update_release(self, tag: str) -> str:
        """Return the id of the release for *tag*, creating it if absent."""
        ...

    def list_assets(self, release_id: str) -> dict[str, str]:
        """Return ``{asset name: asset id}`` for a release."""
        ...

    def upload_asset(self, release_id: str, name: str, data: bytes) -> str:
        """Upload a new asset and return its id."""
        ...

    def rename_asset(self, release_id: str, asset_id: str, name: str) -> None:
        ...

    def delete_asset(self, release_id: str, asset_id: str) -> None:
        ...


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryReleaseHost:
    """Keeps releases and assets in dictionaries.

    ``releases`` maps tag -> release id; ``assets`` maps release id ->
    {asset name -> bytes}.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.releases: dict[str, str] = {}
        self.assets: dict[str, dict[str, bytes]] = {}
        self._asset_ids: dict[str, dict[str, str]] = {}

    def create_or_update_release(self, tag: str) -> str:
        if tag not in self.releases:
            release_id = str(next(self._ids))
            self.releases[tag] = release_id
            self.assets[release_id] = {}
            self._asset_ids[release_id] = {}
            logger.debug("Created in-memory release %s for %s", release_id, tag)
        return self.releases[tag]

    def list_assets(self, release_id: str) -> dict[str, str]:
        self._require(release_id)
        return dict(self._asset_ids[release_id])

    def upload_asset(self, release_id: str, name: str, data: bytes) -> str:
        self._require(release_id)
        if name in self.assets[release_id]:
            raise ReleaseHostError(f"Asset {name} already exists on release {release_id}")
        asset_id = str(next(self._ids))
        self.assets[release_id][name] = data
        self._asset_ids[release_id][name] = asset_id
        return asset_id

    def rename_asset(self, release_id: str, asset_id: str, name: str) -> None:
        old = self._name_of(release_id, asset_id)
        if name in self.assets[release_id]:
            raise ReleaseHostError(f"Asset {name} already exists on release {release_id}")
        self.assets[release_id][name] = self.assets[release_id].pop(old)
        self._asset_ids[release_id][name] = self._asset_ids[release_id].pop(old)

    def delete_asset(self, release_id: str, asset_id: str) -> None:
        name = self._name_of(release_id, asset_id)
        del self._asset_ids[release_id][name]
        del self.assets[release_id][name]

    def _name_of(self, release_id: str, asset_id: str) -> str:
        self._require(release_id)
        for name, existing_id in self._asset_ids[release_id].items():
            if existing_id == asset_id:
                return name
        raise ReleaseHostError(f"Asset {asset_id} not found on release {release_id}")

    def _require(self, release_id: str) -> None:
        if release_id not in self.assets:
            raise ReleaseHostError(f"Unknown release {release_id}")


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------


class GitHubReleaseHost:
    """GitHub Releases over the REST API.

    Parameters
    ----------
    repository:
        ``owner/name`` of the repository.
    token:
        Token with ``contents: write`` permission.
    api_url / uploads_url:
        API roots; override for GitHub Enterprise.
    timeout:
        Request timeout in seconds.
    client:
        Pre-built ``httpx.Client`` (tests pass one with a MockTransport).
    """

    page_size = 100

    def __init__(
        self,
        repository: str,
        token: str,
        *,
        api_url: str = "https://api.github.com",
        uploads_url: str = "https://uploads.github.com",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not repository or "/" not in repository:
            raise ValueError(f"repository must be 'owner/name', got {repository!r}")
        if not token:
            raise ValueError("a GitHub token is required to publish releases")
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.uploads_url = uploads_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @property
    def _repo_url(self) -> str:
        return f"{self.api_url}/repos/{self.repository}"

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            response = self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise ReleaseHostError(f"{method} {url} failed: {exc}") from exc
        return response

    @staticmethod
    def _check(response: httpx.Response, what: str) -> httpx.Response:
        if response.status_code >= 400:
            raise ReleaseHostError(
                f"{what} returned {response.status_code}: {response.text[:200]}"
            )
        return response

    def create_or_update_release(self, tag: str) -> str:
        response = self._request("GET", f"{self._repo_url}/releases/tags/{tag}")
        if response.status_code == 404:
            response = self._request(
                "POST",
                f"{self._repo_url}/releases",
                json={"tag_name": tag, "name": tag},
            )
            self._check(response, f"create release {tag}")
            logger.info("Created GitHub release for %s", tag)
        else:
            self._check(response, f"get release {tag}")
            logger.info("Reusing GitHub release for %s", tag)
        return str(response.json()["id"])

    def list_assets(self, release_id: str) -> dict[str, str]:
        """All assets of a release, following ``Link: rel="next"`` pages."""
        assets: dict[str, str] = {}
        url: str | None = f"{self._repo_url}/releases/{release_id}/assets"
        params: dict | None = {"per_page": self.page_size}
        while url:
            response = self._request("GET", url, params=params)
            self._check(response, f"list assets of release {release_id}")
            for asset in response.json():
                assets[asset["name"]] = str(asset["id"])
            url = response.links.get("next", {}).get("url")
            params = None  # the next link carries its own query
        return assets

    def upload_asset(self, release_id: str, name: str, data: bytes) -> str:
        response = self._request(
            "POST",
            f"{self.uploads_url}/repos/{self.repository}/releases/{release_id}/assets",
            params={"name": name},
            content=data,
            headers={"Content-Type": "application/gzip"},
        )
        self._check(response, f"upload {name}")
        return str(response.json()["id"])

    def rename_asset(self, release_id: str, asset_id: str, name: str) -> None:
        response = self._request(
            "PATCH",
            f"{self._repo_url}/releases/assets/{asset_id}",
            json={"name": name},
        )
        self._check(response, f"rename asset {asset_id} to {name}")

    def delete_asset(self, release_id: str, asset_id: str) -> None:
        response = self._request("DELETE", f"{self._repo_url}/releases/assets/{asset_id}")
        self._check(response, f"delete asset {asset_id}")

    def close(self) -> None:
        self._client.close()
