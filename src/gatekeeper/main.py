"""ASGI entrypoint: ``uvicorn src.gatekeeper.main:app``."""

from src.gatekeeper.api.http.app import create_app
from src.gatekeeper.api.utils.app_startup import configure_logging
from src.gatekeeper.runtime.context import get_config

main_config = get_config()
configure_logging(main_config)

app = create_app(main_config)
