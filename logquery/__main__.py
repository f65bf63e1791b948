"""
日志查询网关启动入口

Usage:
    python -m logquery [--host HOST] [--port PORT] [--verbose]
"""
import argparse
import logging

import uvicorn

from logquery.core.config import settings


def setup_logging(level: str):
    """配置根日志记录器"""
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main():
    """命令行入口"""
    parser = argparse.ArgumentParser(description='Log Query Gateway')
    parser.add_argument(
        '--host',
        default=settings.app_host,
        help=f'Host to bind the server to (default: {settings.app_host})'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=settings.app_port,
        help=f'Port to bind the server to (default: {settings.app_port})'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()
    setup_logging('DEBUG' if args.verbose else settings.log_level)

    logger = logging.getLogger(__name__)
    logger.info(f"Server starting on port {args.port}.")

    uvicorn.run("logquery.main:app", host=args.host, port=args.port, log_config=None)


if __name__ == '__main__':
    main()
