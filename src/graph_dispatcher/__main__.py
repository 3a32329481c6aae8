"""Run the dispatcher service with uvicorn."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "graph_dispatcher.web:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "80")),
    )


if __name__ == "__main__":
    main()
