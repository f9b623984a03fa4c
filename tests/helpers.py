"""Sample package contents and tar builders shared by the test modules."""

import io
import tarfile

MANIFEST = b'manifest_version = 3\nname = "demo"\nlanguage = "rust"\n'
WASM = b"\x00asm\x01\x00\x00\x00" + b"\x00" * 64

VALID_ENTRIES = [
    ("fastly.toml", MANIFEST),
    ("main.wasm", WASM),
]


def build_tar(entries) -> bytes:
    """Build an uncompressed tar; names ending in "/" become directories."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.GNU_FORMAT) as tar:
        for name, data in entries:
            if name.endswith("/"):
                info = tarfile.TarInfo(name.rstrip("/"))
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
                continue
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()
