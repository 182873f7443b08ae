"""
Attendance Service - Main Entry Point

Takes attendance for one group from one camera.
"""

import argparse
import os
import sys
import threading
from dataclasses import replace
from pathlib import Path

from .config import load_config, validate_config
from .errors import ConfigurationError
from .logging_config import setup_logging, get_logger
from .video_loop import run

logger = get_logger(__name__)


def _load_local_env() -> None:
    """Load environment variables from attendance_service/.env if present."""
    env_path = Path(__file__).resolve().parent / '.env'
    if not env_path.exists():
        return

    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        os.environ.setdefault(key.strip(), value.strip())


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Attendance Service - Face Recognition Attendance'
    )

    parser.add_argument(
        '--group-id',
        type=str,
        help='Group (class) to take attendance for (or set GROUP_ID)'
    )

    parser.add_argument(
        '--backend-url',
        type=str,
        help='Backend API URL (or set BACKEND_URL)'
    )

    parser.add_argument(
        '--camera-source',
        type=str,
        help='Webcam index or stream URL (or set CAMERA_SOURCE)'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if not args.group_id:
        args.group_id = os.getenv('GROUP_ID')
    if not args.group_id:
        parser.error('Missing group id. Provide --group-id or set GROUP_ID in .env/environment.')

    return args


def main() -> None:
    """Main entry point."""
    _load_local_env()
    args = parse_args()

    config = load_config()
    overrides = {'group_id': args.group_id}
    if args.backend_url:
        overrides['backend_url'] = args.backend_url
    if args.camera_source:
        overrides['camera_source'] = args.camera_source
        overrides['camera_id'] = os.getenv('CAMERA_ID', args.camera_source)
    if args.debug:
        overrides['debug_mode'] = True
    config = replace(config, **overrides)

    setup_logging(config.camera_id, config.debug_mode)

    try:
        validate_config(config)
    except ConfigurationError as e:
        logger.error(f'Invalid configuration: {e}')
        sys.exit(2)

    logger.info('=' * 60)
    logger.info('Attendance Service')
    logger.info('=' * 60)
    logger.info(f'Group: {config.group_id}')
    logger.info(f'Backend: {config.backend_url}')
    logger.info(
        f'Matching: threshold={config.match_threshold}, ratio={config.ratio_test_max}, '
        f'third={config.third_candidate_ratio_max}'
    )
    logger.info(
        f'Confirmation: {config.required_consecutive_matches} matches '
        f'>= {config.min_confidence}% every {config.recognition_interval_seconds}s'
    )
    logger.info('=' * 60)

    stop_flag = threading.Event()

    try:
        run(config, stop_flag)
    except KeyboardInterrupt:
        logger.info('Received keyboard interrupt, shutting down...')
        stop_flag.set()
        sys.exit(0)
    except Exception as e:
        logger.error(f'Fatal error: {e}', exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
