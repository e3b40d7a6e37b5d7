import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles

# Sidecar holding a blob's content type and cache policy
METADATA_SUFFIX = ".meta.json"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class Blob:
    content: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    cache_control: Optional[str] = None


class StorageService:
    """
    Blob storage on the local filesystem.
    Objects are addressed by a relative path and served publicly under PUBLIC_BASE_URL,
    with the content type and Cache-Control they were written with.
    """

    def __init__(self, root_dir: str, public_base_url: str):
        self.root_dir = Path(root_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root_dir / path).resolve()
        if self.root_dir.resolve() not in target.parents:
            raise ValueError(f"Blob path escapes storage root: {path}")
        return target

    def _metadata_path(self, target: Path) -> Path:
        return target.with_name(target.name + METADATA_SUFFIX)

    async def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    async def read(self, path: str) -> Optional[bytes]:
        target = self._resolve(path)
        if not target.is_file():
            return None
        async with aiofiles.open(target, 'rb') as f:
            return await f.read()

    async def read_blob(self, path: str) -> Optional[Blob]:
        """
        Content plus stored metadata. Sidecars and temp files are not blobs.
        """
        if path.endswith(METADATA_SUFFIX) or path.endswith(".tmp"):
            return None
        target = self._resolve(path)
        if not target.is_file():
            return None
        async with aiofiles.open(target, 'rb') as f:
            content = await f.read()

        blob = Blob(content=content)
        meta_path = self._metadata_path(target)
        if meta_path.is_file():
            async with aiofiles.open(meta_path, 'r') as f:
                meta = json.loads(await f.read())
            blob.content_type = meta.get("contentType") or DEFAULT_CONTENT_TYPE
            blob.cache_control = meta.get("cacheControl")
        return blob

    async def write(
        self,
        path: str,
        content: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        cache_control: Optional[str] = None,
    ) -> str:
        """
        Replace the object at path. Returns its public URL.
        """
        if path.endswith(METADATA_SUFFIX):
            raise ValueError(f"Blob path uses a reserved suffix: {path}")
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        meta = json.dumps({"contentType": content_type, "cacheControl": cache_control})
        await self._replace(self._metadata_path(target), meta.encode("utf-8"))
        await self._replace(target, content)

        return self.public_url(path)

    async def _replace(self, target: Path, content: bytes) -> None:
        # Write to a sibling temp file then swap, so readers never see a partial blob
        tmp_path = target.with_name(target.name + ".tmp")
        async with aiofiles.open(tmp_path, 'wb') as f:
            await f.write(content)
        os.replace(tmp_path, target)

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path.lstrip('/')}"
