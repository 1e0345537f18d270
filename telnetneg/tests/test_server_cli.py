"""Test command line argument parsing of telnetneg-server."""
# 3rd party
import pytest

# local
from telnetneg.server import parse_server_args, CONFIG
from telnetneg.handlers import WillEchoHandler


def test_defaults():
    args = parse_server_args([])
    assert args['host'] == CONFIG.host
    assert args['port'] == CONFIG.port
    assert args['ttype'] is True
    assert args['charset'] == 'UTF-8'
    assert args['handlers'] == []


def test_negotiation_options():
    args = parse_server_args(['0.0.0.0', '6023', '--no-ttype', '--charset', 'latin1'])
    assert args['host'] == '0.0.0.0'
    assert args['port'] == 6023
    assert args['ttype'] is False
    assert args['charset'] == 'latin1'


def test_no_charset():
    assert parse_server_args(['--no-charset'])['charset'] is False


def test_charset_options_exclusive():
    with pytest.raises(SystemExit):
        parse_server_args(['--charset', 'latin1', '--no-charset'])


def test_handler_lookup():
    args = parse_server_args(['--handler', 'telnetneg.handlers.WillEchoHandler'])
    assert args['handlers'] == [WillEchoHandler]
