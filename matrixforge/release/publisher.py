"""Release publisher — attach succeeded artifacts to one tagged release.

Publishing happens once, after every job of a run reached a terminal
state, with whatever subset of artifacts succeeded.  A partial release is
preferred over no release.

Re-publishing a tag is an upsert: the release is looked up by tag, and an
asset that already exists under the same name is replaced, so repeated
runs never create duplicate releases or duplicate assets.  A replacement
is uploaded before the old asset is deleted, so a failed re-publish never
loses an asset the release already had.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from matrixforge.core.errors import PublishError
from matrixforge.models.artifacts import Artifact, PublishResult, ReleaseRecord
from matrixforge.release.hosting import ReleaseHost, ReleaseHostError

logger = logging.getLogger(__name__)

STAGING_SUFFIX = ".upload"


class ReleasePublisher:
    """Publishes ReleaseRecords through a ReleaseHost."""

    def __init__(self, host: ReleaseHost) -> None:
        self.host = host

    def publish(self, tag: str, artifacts: Iterable[Artifact]) -> PublishResult:
        """Attach *artifacts* to the release for *tag*.

        Raises PublishError if there is nothing to attach, the release
        cannot be created, or every upload fails.
        """
        record = ReleaseRecord(tag=tag)
        for artifact in artifacts:
            if artifact.target_triple in record.artifacts:
                logger.warning(
                    "Skipping second artifact for %s on %s", artifact.target_triple, tag
                )
                continue
            record.attach(artifact)
        return self.publish_record(record)

    def publish_record(self, record: ReleaseRecord) -> PublishResult:
        tag = record.tag
        if not record.artifacts:
            raise PublishError(f"No artifacts to publish for {tag}")

        try:
            release_id = self.host.create_or_update_release(tag)
            existing = self.host.list_assets(release_id)
        except ReleaseHostError as exc:
            raise PublishError(f"Could not prepare release {tag}: {exc}") from exc

        attached: list[str] = []
        replaced: list[str] = []
        failed: dict[str, str] = {}

        for triple in record.target_triples:
            artifact = record.artifacts[triple]
            name = artifact.archive_name
            try:
                data = artifact.archive_path.read_bytes()
                if name in existing:
                    self._replace(release_id, name, data, existing)
                    replaced.append(name)
                else:
                    self._drop_staged(release_id, name, existing)
                    self.host.upload_asset(release_id, name, data)
            except (OSError, ReleaseHostError) as exc:
                logger.error("Upload of %s to %s failed [%s]: %s", name, tag, triple, exc)
                failed[name] = str(exc)
                continue
            attached.append(name)
            logger.info("Attached %s to %s [%s]", name, tag, triple)

        if not attached:
            raise PublishError(
                f"No artifact could be attached to {tag}: "
                + "; ".join(f"{n}: {r}" for n, r in failed.items())
            )

        return PublishResult(
            tag=tag,
            release_id=release_id,
            attached=attached,
            replaced=replaced,
            failed=failed,
        )

    def _replace(
        self, release_id: str, name: str, data: bytes, existing: dict[str, str]
    ) -> None:
        """Swap in new bytes for an existing asset.

        The new archive is uploaded under a staging name first; the old
        asset is only deleted once that upload succeeded.
        """
        self._drop_staged(release_id, name, existing)
        staged_id = self.host.upload_asset(release_id, f"{name}{STAGING_SUFFIX}", data)
        self.host.delete_asset(release_id, existing[name])
        self.host.rename_asset(release_id, staged_id, name)

    def _drop_staged(self, release_id: str, name: str, existing: dict[str, str]) -> None:
        # Left behind by an interrupted earlier replace.
        staged = f"{name}{STAGING_SUFFIX}"
        if staged in existing:
            self.host.delete_asset(release_id, existing[staged])
