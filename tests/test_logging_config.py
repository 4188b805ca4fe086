"""Tests for the console formatter and the database logger."""
import logging
import sys

from hockeyhub_medical.logging_config import (
    DATE_FORMAT, LOG_FORMAT, Colors, ColoredFormatter, DatabaseLogger
)


def make_record(level=logging.INFO, msg='Pool ready for %s', args=('MEDICAL',), exc_info=None):
    return logging.LogRecord('hockeyhub.database', level, __file__, 10, msg, args, exc_info)


class TestColoredFormatter:

    def test_line_colours_level_and_logger_name(self):
        line = ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT).format(make_record())

        assert f"{Colors.BRIGHT_BLUE}INFO    {Colors.RESET}" in line
        assert f"{Colors.BRIGHT_CYAN}{'hockeyhub.database':<20s}{Colors.RESET}" in line
        assert line.endswith(': Pool ready for MEDICAL')
        assert line.startswith(f"{Colors.BRIGHT_BLACK}[")

    def test_custom_levels_take_the_colour_below_them(self):
        formatter = ColoredFormatter()

        assert formatter.level_color(25) == Colors.BRIGHT_BLUE
        assert formatter.level_color(logging.CRITICAL + 5) == Colors.RED + Colors.BOLD
        assert formatter.level_color(5) == Colors.WHITE

    def test_traceback_follows_the_message(self):
        try:
            raise RuntimeError('pool exhausted')
        except RuntimeError:
            record = make_record(logging.ERROR, 'Query failed', (), sys.exc_info())

        line = ColoredFormatter().format(record)

        first, rest = line.split('\n', 1)
        assert first.endswith(': Query failed')
        assert 'RuntimeError: pool exhausted' in rest


def test_database_logger_writes_its_own_file():
    db_logger = DatabaseLogger()
    handlers = [h for h in db_logger.logger.handlers if getattr(h, 'baseFilename', '').endswith('database.log')]

    assert db_logger.logger.name == 'hockeyhub.database'
    assert len(handlers) == 1
