# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "galaxite[compress] @ file:///${PROJECT_ROOT}/..",
#     "granian[uvloop]>=2.6.0,<3.0.0",
#     "httpx>=0.28.1,<0.29.0",
# ]
# ///
"""Static mode demo.

Serves a temporary directory with pre-compressed sidecars and fetches a few
files with different Accept-Encoding headers.
"""

import asyncio
import logging
import sys
import tempfile
from pathlib import Path

import httpx

from galaxite import Server

PORT = 8000


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    with tempfile.TemporaryDirectory() as tmpdir:
        static_dir = Path(tmpdir)
        create_sample_files(static_dir)

        server = Server()
        server.serve_static(static_dir, precompress=True)
        await server.listen(PORT)
        await asyncio.sleep(0.5)  # let Granian bind
        try:
            await requests()
        finally:
            await server.close()


def create_sample_files(static_dir: Path) -> None:
    (static_dir / "index.html").write_text(
        "<!doctype html><link rel=stylesheet href=/styles.css><h1>hi</h1>" * 20
    )
    (static_dir / "styles.css").write_text("body { color: rebeccapurple; }\n" * 50)
    (static_dir / "logo.png").write_bytes(b"\x89PNG\r\n" + b"\x00" * 64)


async def requests() -> None:
    async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{PORT}") as client:
        for path, encoding in [
            ("/", "identity"),
            ("/styles.css", "gzip"),
            ("/styles.css", "br, zstd"),
            ("/logo.png", "br"),
            ("/missing.js", "gzip"),
        ]:
            res = await client.get(path, headers={"accept-encoding": encoding})
            print(
                f"{path} [{encoding}] -> {res.status_code} "
                f"content-encoding={res.headers.get('content-encoding')}",
                file=sys.stderr,
            )


if __name__ == "__main__":
    asyncio.run(main())
