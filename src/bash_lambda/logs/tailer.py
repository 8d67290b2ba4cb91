"""
CloudWatch Logs tailer for Lambda functions.
Polls a function's log group with a moving timestamp cursor.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from bash_lambda.config import TAIL_POLL_INTERVAL, TAIL_START_SECONDS_AGO

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H:%M:%S"


def log_group_name(function_name: str) -> str:
    return f"/aws/lambda/{function_name}"


def initial_start_time(now: Optional[float] = None, seconds_ago: int = TAIL_START_SECONDS_AGO) -> int:
    """Cursor for the first poll, in milliseconds since the epoch."""
    now = time.time() if now is None else now
    return (int(now) - seconds_ago) * 1000


def advance_cursor(start_time: int, events: List[Dict[str, Any]]) -> int:
    """
    Move the cursor past the events just fetched.

    With events, the cursor lands one millisecond after the newest one. Without
    events it still moves forward by one millisecond.
    """
    if events:
        return max(event['timestamp'] for event in events) + 1
    return start_time + 1


def format_event(event: Dict[str, Any]) -> str:
    timestamp = datetime.fromtimestamp(event['timestamp'] / 1000, tz=timezone.utc)
    message = event['message'].rstrip('\n')
    return f"{timestamp.strftime(TIMESTAMP_FORMAT)} - {message}"


class LogTailer:
    """
    Follows the CloudWatch log group of a Lambda function.

    Events are fetched from a cursor timestamp onwards. Events sharing the
    cursor's millisecond with an already printed event can be printed twice.
    """

    def __init__(
        self,
        function_name: str,
        region_name: Optional[str] = None,
        poll_interval: float = TAIL_POLL_INTERVAL,
        output: Callable[[str], None] = print
    ):
        """
        Initialize the log tailer.

        Args:
            function_name: Name of the Lambda function whose logs are followed
            region_name: AWS region name. If not provided, uses the default region.
            poll_interval: Seconds to sleep between polls
            output: Callable receiving each formatted log line
        """
        self.logs_client = boto3.client('logs', region_name=region_name)
        self.log_group_name = log_group_name(function_name)
        self.poll_interval = poll_interval
        self.output = output

    def fetch_events(self, start_time: int) -> List[Dict[str, Any]]:
        """
        Fetch every event in the log group at or after start_time.

        A log group that does not exist yet (the function never ran) yields no events.

        Args:
            start_time: Cursor in milliseconds since the epoch

        Returns:
            List of log events
        """
        events = []
        paginator = self.logs_client.get_paginator('filter_log_events')
        try:
            for page in paginator.paginate(logGroupName=self.log_group_name, startTime=start_time):
                events.extend(page.get('events', []))
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceNotFoundException':
                logger.debug(f"Log group {self.log_group_name} does not exist yet")
                return []
            logger.error(f"Error fetching events from {self.log_group_name}: {e}")
            raise
        return events

    def poll(self, start_time: int) -> int:
        """
        Print events since start_time and return the next cursor.
        """
        events = self.fetch_events(start_time)
        next_start_time = advance_cursor(start_time, events)

        for event in sorted(events, key=lambda e: e['timestamp']):
            self.output(format_event(event))

        return next_start_time

    def tail(self, start_time: Optional[int] = None, max_polls: Optional[int] = None) -> int:
        """
        Poll the log group until interrupted.

        Args:
            start_time: Initial cursor (default: one hour ago)
            max_polls: Stop after this many polls (default: never)

        Returns:
            The cursor after the last poll
        """
        start_time = initial_start_time() if start_time is None else start_time
        logger.info(f"Tailing log group {self.log_group_name}")

        polls = 0
        while max_polls is None or polls < max_polls:
            start_time = self.poll(start_time)
            polls += 1
            time.sleep(self.poll_interval)

        return start_time
