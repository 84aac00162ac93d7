# shot_annote/app.py
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from PyQt5.QtWidgets import QApplication

from .config import load_config
from .main_window import MainWindow


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="shot-annote",
        description="Annotate a video with timestamped descriptions and shot types.",
    )
    p.add_argument("media", nargs="?", help="media file to open")
    p.add_argument("--config", default=None, help="config file (default: ~/.shot_annote/config.json)")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p


def run_app(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.verbose)

    app = QApplication(sys.argv[:1])
    logging.getLogger(__name__).info("Annotation tool activated")

    win = MainWindow(cfg=load_config(args.config), config_path=args.config)
    win.show()
    if args.media:
        win.open_media(args.media)

    code = app.exec_()
    logging.getLogger(__name__).info("Annotation tool deactivated")
    return code
