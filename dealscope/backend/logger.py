import logging, os, sys


def get_logger(name: str = "dealscope") -> logging.Logger:
	logger = logging.getLogger(name)
	if logger.handlers:
		return logger
	level = os.getenv("LOG_LEVEL", "INFO").upper()
	logger.setLevel(level)
	ch = logging.StreamHandler(sys.stdout)
	ch.setLevel(level)
	fmt = logging.Formatter(
		fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	)
	ch.setFormatter(fmt)
	logger.addHandler(ch)
	return logger
