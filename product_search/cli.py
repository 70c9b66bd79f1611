"""Terminal driver that runs a search widget against a live storefront."""

import argparse
import asyncio
from collections.abc import Iterable

import redis.asyncio as aioredis

from product_search.core.config import settings
from product_search.core.logging_config import setup_logging
from product_search.integrations.events import EventBus, InMemoryEventBus
from product_search.integrations.redis_bus import RedisEventBus
from product_search.integrations.storefront.client import StorefrontClient
from product_search.schemas.storefront import Product
from product_search.view import SearchView, Severity
from product_search.widget import ProductSearchWidget

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"

HELP = "Type to search. 'add N' adds result N, 'variant N ID' adds a variant, 'quit' exits."


def format_minor_units(amount: int | None) -> str:
    if amount is None:
        return "-"
    return f"{amount / 100:.2f}"


class ConsoleView(SearchView):
    """Prints what a results panel would show."""

    def __init__(self) -> None:
        self.shown: list[Product] = []

    def render(self, products: list[Product]) -> None:
        self.shown = products
        print(f"results: {len(products)}")
        for idx, product in enumerate(products, start=1):
            variants = len(product.full_variants or [])
            print(
                f"  {idx:02d}. {product.title} | {format_minor_units(product.price)} | "
                f"{product.handle} | variants={variants}"
            )

    def show_loading(self) -> None:
        print("Searching...")

    def hide(self) -> None:
        self.shown = []

    def notify(self, message: str, severity: Severity = "info") -> None:
        color = RED if severity == "error" else GREEN
        print(f"{color}{message}{RESET}")

    def navigate(self, url: str) -> None:
        print(f"-> {url}")


async def run_query(widget: ProductSearchWidget, query: str) -> None:
    widget.on_input(query)
    await widget.wait_until_idle()


async def interactive_shell(widget: ProductSearchWidget, view: ConsoleView) -> None:
    print(HELP)
    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except (EOFError, KeyboardInterrupt):
            print()
            return
        command, _, rest = line.strip().partition(" ")
        if command.lower() in {"exit", "quit"}:
            return
        if command == "add" and rest.isdigit():
            product = _pick(view, int(rest))
            if product is not None:
                await widget.select_product(product)
        elif command == "variant" and len(rest.split()) == 2:
            index, variant_id = rest.split()
            product = _pick(view, int(index))
            if product is not None:
                result = await widget.select_variant(product, int(variant_id))
                if result.success:
                    view.notify(f"Added variant {variant_id}", "success")
        else:
            await run_query(widget, line)
        await widget.wait_until_idle()


def _pick(view: ConsoleView, index: int) -> Product | None:
    if 1 <= index <= len(view.shown):
        return view.shown[index - 1]
    view.notify(f"No result #{index}", "error")
    return None


async def _main(storefront_url: str, query: str | None, redis_url: str | None) -> None:
    view = ConsoleView()
    redis = aioredis.from_url(redis_url, decode_responses=True) if redis_url else None
    bus: EventBus = RedisEventBus(redis) if redis is not None else InMemoryEventBus()
    try:
        async with (
            StorefrontClient(storefront_url) as client,
            ProductSearchWidget(client, view, bus) as widget,
        ):
            if query:
                await run_query(widget, query)
                return
            await interactive_shell(widget, view)
    finally:
        if isinstance(bus, RedisEventBus):
            await bus.aclose()
        if redis is not None:
            await redis.aclose()


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Search a storefront from the terminal")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument(
        "--storefront-url",
        default=str(settings.storefront_url),
        help="Base URL of the storefront",
    )
    parser.add_argument(
        "--redis",
        action="store_true",
        help="Share cart events with other processes over REDIS_URL",
    )
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args(list(argv) if argv is not None else None)

    setup_logging(debug=args.debug or settings.debug)
    redis_url = str(settings.redis_url) if args.redis else None
    asyncio.run(_main(args.storefront_url, args.query, redis_url))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
