from __future__ import annotations

import logging
from logging.config import dictConfig


def configure_logging(level: int | str = logging.INFO) -> None:
	if isinstance(level, str):
		level = level.upper()
	dictConfig(
		{
			"version": 1,
			"disable_existing_loggers": False,
			"formatters": {
				"standard": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}
			},
			"handlers": {
				"console": {
					"class": "logging.StreamHandler",
					"formatter": "standard",
					"level": level,
				}
			},
			"loggers": {
				"": {"handlers": ["console"], "level": level},
				"uvicorn": {"handlers": ["console"], "level": level},
			},
		}
	)
	# The JSON loggers under "statements" keep their own handler; only their level follows
	for name, existing in list(logging.root.manager.loggerDict.items()):
		if name.split(".")[0] == "statements" and isinstance(existing, logging.Logger):
			existing.setLevel(level)
