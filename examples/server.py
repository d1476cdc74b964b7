# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "galaxite @ file:///${PROJECT_ROOT}/..",
#     "granian[uvloop]>=2.6.0,<3.0.0",
# ]
# ///
"""Web server demo.

Fully functional JSON API served by Granian through a galaxite Server.
"""

import asyncio
import logging
import sqlite3
import time

from galaxite import Request, Response, Server, ServerOptions
from galaxite.chain import Proceed

PORT = 8000

logger = logging.getLogger("demo")

_db = sqlite3.connect(":memory:")
_db.cursor().executescript("""
CREATE TABLE IF NOT EXISTS user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);
""")


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    server = Server(ServerOptions.from_env())
    server.use(timing)
    server.route("/").get(home)
    server.route("/user").get(get_users(_db)).post(create_user(_db))
    server.route("/user/:id").get(get_user(_db)).patch(update_user(_db))

    await server.listen(PORT, lambda port: logger.info("ready on port %d", port))
    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        pass
    finally:
        await server.close()


async def timing(req: Request, res: Response, proceed: Proceed) -> None:
    start = time.perf_counter()
    await proceed()
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s took %.2fms", req.method, req.route.pattern, elapsed_ms)


async def home(req: Request, res: Response) -> None:
    res.send("Welcome home")


# closure over handler to inject dependencies
def get_users(db: sqlite3.Connection):
    async def handler(req: Request, res: Response) -> None:
        cur = db.cursor()
        cur.execute("SELECT * FROM user")
        res.json([{"id": row[0], "name": row[1]} for row in cur.fetchall()])

    return handler


def get_user(db: sqlite3.Connection):
    async def handler(req: Request, res: Response) -> None:
        try:
            user_id = int(req.route.params["id"] or "")
        except ValueError:
            res.status(404).send("Not found")
            return
        cur = db.cursor()
        cur.execute("SELECT * FROM user WHERE id = ?", (user_id,))
        result = cur.fetchone()
        if result is None:
            res.status(404).send("Not found")
            return
        res.json({"id": result[0], "name": result[1]})

    return handler


def create_user(db: sqlite3.Connection):
    async def handler(req: Request, res: Response) -> None:
        if not isinstance(req.body, dict) or "name" not in req.body:
            res.status(422).send("Missing name")
            return
        cur = db.cursor()
        cur.execute(
            "INSERT INTO user (name) VALUES (?) RETURNING *", (req.body["name"],)
        )
        result = cur.fetchone()
        res.status(201).json({"id": result[0], "name": result[1]})

    return handler


def update_user(db: sqlite3.Connection):
    async def handler(req: Request, res: Response) -> None:
        if not isinstance(req.body, dict) or "name" not in req.body:
            res.status(422).send("Missing name")
            return
        cur = db.cursor()
        cur.execute(
            "UPDATE user SET name = ? WHERE id = ? RETURNING *",
            (req.body["name"], req.route.params["id"]),
        )
        result = cur.fetchone()
        if result is None:
            res.status(404).send("Not found")
            return
        res.json({"id": result[0], "name": result[1]})

    return handler


if __name__ == "__main__":
    asyncio.run(main())
