"""
Attendance sending module.

Posts attendance records to the backend API.
"""

from typing import Callable

import requests

from .config import Config
from .ledger import AttendanceRecord
from .logging_config import get_logger
from .utils.timing import retry_with_backoff

logger = get_logger(__name__)


class _ServerError(Exception):
    """5xx response, worth retrying."""


def send_attendance(record: AttendanceRecord, config: Config, max_attempts: int = 3) -> bool:
    """
    Send an attendance record to the backend.

    Server errors and connection problems are retried with backoff.
    A 409 means the backend already holds this record, which counts
    as stored.

    Args:
        record: Attendance record
        config: Service configuration
        max_attempts: Attempts before giving up

    Returns:
        True if the backend stored the record
    """
    url = f"{config.backend_url.rstrip('/')}/api/attendance"
    payload = record.to_payload()

    def _post() -> requests.Response:
        response = requests.post(url, json=payload, timeout=5)
        if response.status_code >= 500:
            raise _ServerError(f'{response.status_code} {response.text}')
        return response

    logger.info(f'Sending attendance for {record.identity_id} (group {record.group_id})')

    try:
        response = retry_with_backoff(
            _post,
            max_attempts=max_attempts,
            retry_on=(_ServerError, requests.exceptions.ConnectionError, requests.exceptions.Timeout),
        )
    except _ServerError as e:
        logger.error(f'Backend rejected attendance: {e}')
        return False
    except requests.exceptions.Timeout:
        logger.error(f'Timeout sending attendance to {url}')
        return False
    except requests.exceptions.RequestException as e:
        logger.error(f'Error sending attendance: {e}')
        return False

    if response.ok:
        logger.info('Attendance stored')
        return True

    if response.status_code == 409:
        logger.info(f'Attendance for {record.identity_id} already stored by backend')
        return True

    logger.error(f'Failed to store attendance: {response.status_code} {response.text}')
    return False


def make_attendance_sink(config: Config) -> Callable[[AttendanceRecord], bool]:
    """
    Bind send_attendance to a configuration for use as a ledger sink.
    """
    def sink(record: AttendanceRecord) -> bool:
        return send_attendance(record, config)

    return sink
