import logging
import os
import tempfile
import unittest

from petriflow.IO.debug import setup_logging


class TestSetupLogging(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        self._saved = (list(root.handlers), root.level)
        # detach the runner's handlers so setup_logging cannot close them
        for h in list(root.handlers):
            root.removeHandler(h)

    def tearDown(self) -> None:
        root = logging.getLogger()
        for h in list(root.handlers):
            root.removeHandler(h)
        handlers, level = self._saved
        for h in handlers:
            root.addHandler(h)
        root.setLevel(level)

    def test_stream_handler(self) -> None:
        logger = setup_logging("debug")
        self.assertIs(logger, logging.getLogger())
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertEqual(len(logger.handlers), 1)

    def test_repeated_calls_replace_handler(self) -> None:
        setup_logging("INFO")
        logger = setup_logging("WARNING")
        self.assertEqual(len(logger.handlers), 1)
        self.assertEqual(logger.level, logging.WARNING)

    def test_file_handler(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "run.log")
            logger = setup_logging("INFO", path)
            logging.getLogger("petriflow.test").info("hello %s", "file")
            for h in logger.handlers:
                h.flush()
            with open(path, encoding="utf-8") as fh:
                self.assertIn("hello file", fh.read())
            for h in list(logger.handlers):
                logger.removeHandler(h)
                h.close()

    def test_invalid_level(self) -> None:
        with self.assertRaises(ValueError):
            setup_logging("LOUD")


if __name__ == "__main__":
    unittest.main()
