import logging

from app import setup_logging


def test_setup_logging_installs_one_handler():
    root = logging.getLogger()
    setup_logging()
    setup_logging()

    assert [h.get_name() for h in root.handlers].count("blog-api") == 1
    assert root.level == logging.getLevelName("INFO")
