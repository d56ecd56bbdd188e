"""
traq-upload-stamp: upload an image file as a traQ stamp.
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

from traq_oauth.integrations.traq.config import get_traq_config
from traq_oauth.logging_config import setup_global_logging
from traq_oauth.main import (
    add_common_arguments,
    build_opener,
    build_server_config,
    load_client,
    run_command,
)
from traq_oauth.oauth.flow import AuthorizationFlow


logger = logging.getLogger(__name__)


async def upload(args: argparse.Namespace) -> int:
    traq_config = get_traq_config()
    flow = AuthorizationFlow(build_opener(args), build_server_config(args))
    client = await load_client(traq_config, flow)

    logger.debug(f"stamp_name={args.stamp_name} file_path={args.file_path}")
    stamp = await client.add_stamp(args.stamp_name, args.file_path)
    logger.info(f"added stamp information is: {stamp.model_dump()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Upload an image as a traQ stamp.")
    parser.add_argument("stamp_name", help="Name of the new stamp")
    parser.add_argument("file_path", help="Image file (jpg, jpeg, gif or png)")
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    setup_global_logging()
    try:
        return run_command(upload, args)
    except OSError as e:
        logger.error(f"Cannot read {args.file_path}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
