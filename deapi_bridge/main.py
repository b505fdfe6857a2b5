from deapi_bridge.config import load_credentials, parse_args
from deapi_bridge.logger import configure_logging, get_logger
from deapi_bridge.webhook_server import create_app

logger = get_logger(__name__)


def main(argv: list[str] | None = None):
    args = parse_args(argv)
    configure_logging(args.log_level)

    credentials = load_credentials(args)
    app = create_app(args, credentials)

    logger.info("Starting deAPI bridge on %s:%d, resume URLs use %s", args.host, args.port, args.public_url)
    app.run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
