import logging

from api.app import create_app
from db.config import settings

logging.basicConfig(
    format="%(levelname)s::%(asctime)s::%(pathname)s::%(lineno)d - %(message)s",
    datefmt="%d-%b-%y %H:%M:%S",
    level=settings.logging_level,
)
logging.getLogger("httpx").setLevel(logging.WARNING)

app = create_app()
