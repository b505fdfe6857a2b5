import argparse
import json
import os

from pydantic import BaseModel, ValidationError

from deapi_bridge.logger import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://api.deapi.ai/api/v1/client"
DEFAULT_BINARY_DIR = "binary-data"
DEFAULT_CREDENTIALS_FILE = "credentials.json"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_HTTP_TIMEOUT = 60  # seconds
DEFAULT_INLINE_BINARY_LIMIT = 1024 * 1024  # bytes
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEFAULT_PORT = 5000
DEFAULT_PUBLIC_URL = "http://127.0.0.1:5000"
DEFAULT_TRIGGER_EVENTS = ["jobCompleted"]

TRIGGER_EVENT_CHOICES = ["jobProcessing", "jobCompleted", "jobFailed"]

API_KEY_ENV = "DEAPI_API_KEY"
WEBHOOK_SECRET_ENV = "DEAPI_WEBHOOK_SECRET"


class BridgeArgs(argparse.Namespace):
    api_base_url: str = DEFAULT_API_BASE_URL
    binary_dir: str = DEFAULT_BINARY_DIR
    credentials_file: str = DEFAULT_CREDENTIALS_FILE
    host: str = DEFAULT_HOST
    http_timeout: int = DEFAULT_HTTP_TIMEOUT
    inline_binary_limit: int = DEFAULT_INLINE_BINARY_LIMIT
    log_level: str = DEFAULT_LOG_LEVEL
    port: int = DEFAULT_PORT
    public_url: str = DEFAULT_PUBLIC_URL
    trigger_download_binary: bool = True
    trigger_events: list[str] = DEFAULT_TRIGGER_EVENTS


class Credentials(BaseModel):
    api_key: str = ""
    webhook_secret: str = ""


def load_credentials(args: BridgeArgs) -> Credentials:
    credentials = Credentials()

    try:
        with open(args.credentials_file, "r") as f:
            credentials = Credentials(**json.load(f))
            logger.info("Loaded credentials from %s", args.credentials_file)
    except FileNotFoundError:
        logger.info("Credentials file %s not found", args.credentials_file)
    except (json.JSONDecodeError, TypeError, ValidationError):
        logger.warning("Could not read credentials from %s", args.credentials_file)

    # Environment variables win over the file
    api_key = os.getenv(API_KEY_ENV)
    webhook_secret = os.getenv(WEBHOOK_SECRET_ENV)
    if api_key:
        credentials.api_key = api_key
    if webhook_secret:
        credentials.webhook_secret = webhook_secret

    if not credentials.api_key:
        logger.warning("No API key configured, job submissions will be rejected by the API")
    if not credentials.webhook_secret:
        logger.warning("No webhook secret configured, every callback will be rejected")

    return credentials


def base_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="deAPI webhook job bridge")
    parser.add_argument('--api_base_url', type=str, default=DEFAULT_API_BASE_URL, help='Base URL of the deAPI client API')
    parser.add_argument('--binary_dir', type=str, default=DEFAULT_BINARY_DIR, help='Directory for binaries kept outside of memory')
    parser.add_argument('--credentials_file', type=str, default=DEFAULT_CREDENTIALS_FILE, help='JSON file holding api_key and webhook_secret')
    parser.add_argument('--host', type=str, default=DEFAULT_HOST, help='Address to listen on')
    parser.add_argument('--http_timeout', type=int, default=DEFAULT_HTTP_TIMEOUT, help='Timeout for outbound HTTP requests in seconds')
    parser.add_argument('--inline_binary_limit', type=int, default=DEFAULT_INLINE_BINARY_LIMIT, help='Binaries larger than this many bytes go to the binary directory')
    parser.add_argument('--log_level', type=str, default=DEFAULT_LOG_LEVEL, help='Logging level')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT, help='Port to listen on')
    parser.add_argument('--public_url', type=str, default=DEFAULT_PUBLIC_URL, help='Address deAPI uses to reach this server, used in resume URLs')
    parser.add_argument('--trigger_events', nargs='+', choices=TRIGGER_EVENT_CHOICES, default=DEFAULT_TRIGGER_EVENTS, help='Events that start a workflow on /trigger')
    parser.add_argument('--no_trigger_download_binary', dest='trigger_download_binary', action='store_false', help='Do not download result_url for triggered job.completed events')
    return parser


def parse_args(argv: list[str] | None = None) -> BridgeArgs:
    return base_parser().parse_args(argv, namespace=BridgeArgs())
