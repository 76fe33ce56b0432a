"""AWS Lambda handler for the event list."""
import json
import logging
import os
import time
from typing import Any, Callable, Dict, Optional

from storage.blob_store import DynamoDBBlobStore
from storage.persistence import DEFAULT_STORAGE_KEY, PersistenceAdapter, format_timestamp
from tracker.errors import NotFoundError, ValidationError
from tracker.models import Event
from tracker.session import EventListSession


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


class RequestError(ValueError):
    """The invocation payload is missing or has malformed fields."""


def _event_to_dict(event: Event, rank: Optional[int] = None) -> Dict[str, Any]:
    data = {
        'id': event.id,
        'name': event.name,
        'note': event.note,
        'create_time': format_timestamp(event.create_time),
        'create_date': event.create_date,
        'sort_order': event.sort_order,
        'completed': event.completed
    }
    if rank is not None:
        data['rank'] = rank
    return data


def _int_field(payload: Dict[str, Any], field: str) -> int:
    value = payload.get(field)
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise RequestError(f"Field '{field}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RequestError(f"Field '{field}' must be an integer") from None


def _text_field(payload: Dict[str, Any], field: str) -> str:
    value = payload.get(field)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise RequestError(f"Field '{field}' must be a string")
    return value


def _list_events(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'events': [
            _event_to_dict(event, rank) for rank, event in session.store.ranked()
        ]
    }


def _get_event(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {'event': _event_to_dict(session.get(_int_field(payload, 'id')))}


def _create_event(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    event = session.add(_text_field(payload, 'name'), _text_field(payload, 'note'))
    return {'event': _event_to_dict(event)}


def _update_event(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    event = session.edit(
        _int_field(payload, 'id'),
        _text_field(payload, 'name'),
        _text_field(payload, 'note')
    )
    return {'event': _event_to_dict(event)}


def _toggle_event(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {'event': _event_to_dict(session.toggle(_int_field(payload, 'id')))}


def _delete_event(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {'event': _event_to_dict(session.remove(_int_field(payload, 'id')))}


def _move_event(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    ordered = session.move(
        _int_field(payload, 'dragged_id'),
        _int_field(payload, 'target_id')
    )
    return {
        'events': [
            _event_to_dict(event, rank) for rank, event in enumerate(ordered, start=1)
        ]
    }


def _clear_events(session: EventListSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    # Confirmation prompts live in the client; refuse unconfirmed requests
    if payload.get('confirm') is not True:
        raise RequestError("Clearing all events requires 'confirm': true")
    return {'cleared': session.clear_all()}


ACTIONS: Dict[str, Callable[[EventListSession, Dict[str, Any]], Dict[str, Any]]] = {
    'list': _list_events,
    'get': _get_event,
    'create': _create_event,
    'update': _update_event,
    'toggle': _toggle_event,
    'delete': _delete_event,
    'move': _move_event,
    'clear': _clear_events,
}


def _parse_request(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract the action payload from a direct or API Gateway invocation.

    Args:
        event: Lambda event

    Returns:
        Payload dict containing at least 'action'
    """
    payload = event
    body = event.get('body') if isinstance(event, dict) else None
    if isinstance(body, str):
        try:
            payload = json.loads(body)
        except ValueError:
            raise RequestError("Request body is not valid JSON") from None

    if not isinstance(payload, dict):
        raise RequestError("Request must be a JSON object")

    action = payload.get('action')
    if action not in ACTIONS:
        raise RequestError(f"Unknown action: {action!r}")
    return payload


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the event list.

    Args:
        event: Invocation payload with an 'action' and its fields
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'event-list')
    storage_key = os.environ.get('STORAGE_KEY', DEFAULT_STORAGE_KEY)
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()

    try:
        payload = _parse_request(event)
    except RequestError as e:
        logger.warning(f"Rejected request: {e}")
        return _response(400, {'message': 'Invalid request', 'error': str(e)})

    action = payload['action']
    logger.info(
        f"Handling action '{action}'",
        extra={'table_name': table_name, 'storage_key': storage_key}
    )

    try:
        adapter = PersistenceAdapter(DynamoDBBlobStore(table_name), key=storage_key)
        session = EventListSession(adapter).open()
        body = ACTIONS[action](session, payload)
    except (RequestError, ValidationError) as e:
        logger.warning(f"Action '{action}' rejected: {e}")
        return _response(400, {
            'message': 'Invalid request',
            'error': str(e),
            'error_type': type(e).__name__
        })
    except NotFoundError as e:
        logger.warning(f"Action '{action}' failed: {e}")
        return _response(404, {
            'message': 'Event not found',
            'error': str(e),
            'event_id': e.event_id
        })
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Action '{action}' failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {
            'message': 'Event list operation failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'note': 'Previously saved events remain in storage',
            'duration_seconds': round(duration, 2)
        })

    duration = time.time() - start_time
    logger.info(
        f"Action '{action}' completed",
        extra={'duration_seconds': round(duration, 2)}
    )
    body['message'] = f"Action '{action}' completed successfully"
    body['duration_seconds'] = round(duration, 2)
    return _response(200, body)
