from __future__ import annotations
import logging
from api.app import FastAPIManager
from config import ENV

logging.basicConfig(
    level=ENV().LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

server_manager = FastAPIManager()
app = server_manager.get_app()

if __name__ == "__main__":
    server_manager.start_server()
