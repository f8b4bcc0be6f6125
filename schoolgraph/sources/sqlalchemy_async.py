from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncEngine

from . import sqlalchemy as _sa

# We are limiting fetch size to reduce CPU usage and avoid event-loop blocking
FETCH_SIZE = 100


class FetchQuery(_sa.FetchQuery):
    async def __call__(self, keys: List) -> List[Dict[str, Any]]:
        expr = self.select_expr(keys)
        if expr is None:
            return []

        sa_engine: AsyncEngine = self.sa_engine
        rows = []
        async with sa_engine.connect() as connection:
            stream = await connection.stream(expr)
            while True:
                bucket = await stream.fetchmany(FETCH_SIZE)
                if bucket:
                    rows.extend(bucket)
                else:
                    break
        return [_sa.row_to_dict(row) for row in rows]
