"""Durable save, load and delete of lineages.

Inline artifacts are uploaded to the artifact store under deterministic
paths before the lineage record is written, so a durable record never
carries inline image data. Re-saving a lineage whose artifacts are already
locators uploads nothing.
"""

import asyncio
import logging

from ..artifact import ArtifactRef, InlineArtifact, LocatorArtifact
from ..history import Lineage
from ..history.storage import ArtifactStore, MetadataStore, NotFoundError

logger = logging.getLogger(__name__)

ORIGINAL_ROLE = "original"
GENERATED_ROLE = "generated"
ITERATION_ROLE_PREFIX = "iteration:"


def iteration_role(iteration_id: str) -> str:
    return f"{ITERATION_ROLE_PREFIX}{iteration_id}"


def artifact_path(owner_id: str, lineage_id: str, role: str) -> str:
    """Storage path for one artifact of a lineage.

    Args:
        owner_id: Owning user.
        lineage_id: Lineage the artifact belongs to.
        role: ``original``, ``generated`` or ``iteration:<id>``.

    Returns:
        Path relative to the artifact store root.
    """
    base = f"users/{owner_id}/{lineage_id}"
    if role.startswith(ITERATION_ROLE_PREFIX):
        return f"{base}/iterations/{role[len(ITERATION_ROLE_PREFIX):]}.png"
    if role in (ORIGINAL_ROLE, GENERATED_ROLE):
        return f"{base}/{role}.png"
    raise ValueError(f"Unknown artifact role: {role}")


class SyncService:
    """Moves lineages between the working session and durable storage.

    Args:
        artifacts: Store for image content.
        metadata: Store for lineage records.
    """

    def __init__(self, artifacts: ArtifactStore, metadata: MetadataStore):
        self.artifacts = artifacts
        self.metadata = metadata

    async def _ensure_locator(
        self, ref: ArtifactRef, owner_id: str, lineage_id: str, role: str
    ) -> LocatorArtifact:
        if isinstance(ref, LocatorArtifact):
            return ref
        path = artifact_path(owner_id, lineage_id, role)
        logger.debug(f"Uploading {role} to {path} ({ref.size_bytes} bytes)")
        return await self.artifacts.upload(path, ref)

    # =========================================================================
    # Save
    # =========================================================================

    async def save(self, lineage: Lineage, owner_id: str) -> bool:
        """Persist a lineage durably.

        Uploads every inline artifact, rewrites the lineage's artifact
        fields to the returned locators, then writes the metadata record.
        If any upload fails nothing is written and the lineage is left
        untouched. Uploads that already succeeded are not rolled back;
        their paths are reused on the next attempt.

        Args:
            lineage: Lineage to persist. Updated in place on success.
            owner_id: Owning user.

        Returns:
            True on success, False on any upload or metadata failure.
        """
        lineage_id = lineage.id
        try:
            original = await self._ensure_locator(
                lineage.original_image, owner_id, lineage_id, ORIGINAL_ROLE
            )
            generated = None
            if lineage.generated_image is not None:
                generated = await self._ensure_locator(
                    lineage.generated_image, owner_id, lineage_id, GENERATED_ROLE
                )
            iteration_images = await asyncio.gather(
                *(
                    self._ensure_locator(
                        it.image, owner_id, lineage_id, iteration_role(it.id)
                    )
                    for it in lineage.iterations
                )
            )
        except Exception:
            logger.exception(f"Failed to upload artifacts for lineage {lineage_id}")
            return False

        updated = lineage.model_copy(
            update={
                "owner_id": owner_id,
                "original_image": original,
                "generated_image": generated,
                "iterations": [
                    it.model_copy(update={"image": image})
                    for it, image in zip(lineage.iterations, iteration_images)
                ],
            }
        )
        try:
            await self.metadata.put(lineage_id, updated)
        except Exception:
            logger.exception(f"Failed to write record for lineage {lineage_id}")
            return False

        lineage.owner_id = updated.owner_id
        lineage.original_image = updated.original_image
        lineage.generated_image = updated.generated_image
        lineage.iterations = updated.iterations
        logger.info(
            f"Saved lineage {lineage_id} with {len(lineage.iterations)} iterations"
        )
        return True

    # =========================================================================
    # Load / Delete
    # =========================================================================

    async def load_all(self, owner_id: str) -> list[Lineage]:
        """Every lineage owned by ``owner_id``, newest first.

        Store failures are logged and reported as an empty portfolio.
        """
        try:
            lineages = await self.metadata.get_all(owner_id)
        except Exception:
            logger.exception(f"Failed to load lineages for {owner_id}")
            return []
        return sorted(lineages, key=lambda lineage: lineage.timestamp, reverse=True)

    async def _delete_artifact(self, path: str) -> None:
        try:
            await self.artifacts.delete(path)
        except NotFoundError:
            logger.debug(f"Artifact already absent: {path}")
        except Exception as e:
            logger.warning(f"Failed to delete artifact {path}: {e}")

    def _stored_paths(self, lineage: Lineage, owner_id: str) -> list[str]:
        refs: list[tuple[str, ArtifactRef | None]] = [
            (ORIGINAL_ROLE, lineage.original_image),
            (GENERATED_ROLE, lineage.generated_image),
        ]
        refs.extend((iteration_role(it.id), it.image) for it in lineage.iterations)

        paths = []
        for role, ref in refs:
            # Inline refs were never uploaded; foreign locators are not ours
            if isinstance(ref, LocatorArtifact) and self.artifacts.manages(ref):
                paths.append(artifact_path(owner_id, lineage.id, role))
        return paths

    async def delete(self, lineage_id: str, owner_id: str) -> list[Lineage]:
        """Delete a lineage and its stored artifacts.

        Artifact cleanup is best effort and runs in parallel; the metadata
        record is deleted regardless of how cleanup went.

        Returns:
            The refreshed portfolio for ``owner_id``.
        """
        try:
            lineage = await self.metadata.get_one(lineage_id)
            if lineage is not None:
                paths = self._stored_paths(lineage, lineage.owner_id or owner_id)
                await asyncio.gather(*(self._delete_artifact(p) for p in paths))
            else:
                logger.warning(
                    f"Lineage {lineage_id} not found; deleting record only"
                )
        except Exception as e:
            logger.warning(
                f"Artifact cleanup for lineage {lineage_id} skipped: {e}"
            )

        try:
            await self.metadata.delete(lineage_id)
            logger.info(f"Deleted lineage {lineage_id}")
        except Exception:
            logger.exception(f"Failed to delete lineage record {lineage_id}")

        return await self.load_all(owner_id)


__all__ = [
    "ORIGINAL_ROLE",
    "GENERATED_ROLE",
    "SyncService",
    "artifact_path",
    "iteration_role",
]
