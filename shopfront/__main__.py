import logging
import sys

from .app import create_app
from .errors import ConfigurationMissing, StoreUnavailable


def main():
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    try:
        app = create_app()
    except (ConfigurationMissing, StoreUnavailable) as exc:
        logging.getLogger("shopfront").critical("Startup failed: %s", exc)
        sys.exit(1)

    port = app.config["PORT"]
    app.logger.info("Server is running at port : %s", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
