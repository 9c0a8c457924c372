"""Command-line entrypoint that serves the API with uvicorn."""

import uvicorn

from nutrition_chat.api.app import create_app
from nutrition_chat.containers import build_container


def main() -> None:
    """Run the API on the configured port."""
    container = build_container()
    uvicorn.run(
        create_app(container),
        host="0.0.0.0",  # noqa: S104
        port=container.settings.port,
    )


if __name__ == "__main__":
    main()
