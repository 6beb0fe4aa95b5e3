"""
SSL identity admin application.

Serves the SSL object validation endpoints and the health/cache
endpoints. The handshake path itself is used as a library through
tls_identity.SNIContextSelector.
"""
import logging
import os

from fastapi import FastAPI

from routers import all_routers

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="SSL Identity", version=os.environ.get("SSL_IDENTITY_VERSION", "0.1.0"))

for router in all_routers:
    app.include_router(router)
