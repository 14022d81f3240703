import json
import logging
import sys

from config.logging_config import JSONFormatter, configure_logging


def test_json_formatter_outputs_structured_record():
    record = logging.LogRecord(
        name='infrastructure.providers.background', level=logging.WARNING, pathname=__file__,
        lineno=10, msg='Background refresh of %s failed', args=('kraken',), exc_info=None,
    )

    entry = json.loads(JSONFormatter().format(record))

    assert entry['level'] == 'WARNING'
    assert entry['logger'] == 'infrastructure.providers.background'
    assert entry['message'] == 'Background refresh of kraken failed'
    assert 'exception' not in entry


def test_json_formatter_includes_exception():
    try:
        raise ValueError('bad payload')
    except ValueError:
        record = logging.LogRecord(
            name='test', level=logging.ERROR, pathname=__file__, lineno=1,
            msg='failed', args=(), exc_info=sys.exc_info(),
        )

    entry = json.loads(JSONFormatter().format(record))

    assert entry['exception']['type'] == 'ValueError'
    assert entry['exception']['message'] == 'bad payload'


def test_configure_logging_sets_level_and_single_handler():
    configure_logging('debug', json_logs=True)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)
