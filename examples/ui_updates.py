import asyncio

from callbatch import batcher, setup_logging


def render_rows(rows: list[dict]) -> None:
    """Redraw every changed row in one pass."""
    print(f"Rendering {len(rows)} row(s): {[row['id'] for row in rows]}")


def on_table_updated() -> None:
    return None


def on_sidebar_updated() -> None:
    return None


async def main() -> None:
    """Feed interleaved updates from two widgets into one batched renderer."""
    render = batcher(render_rows, {"interval": 20, "maximum": 3})

    for index in range(5):
        render({"id": f"table-{index}"}, on_table_updated)
        render({"id": f"sidebar-{index}"}, on_sidebar_updated)

    await asyncio.sleep(delay=0.05)
    await render.close()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
