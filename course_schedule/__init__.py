from importlib.metadata import PackageNotFoundError, version

try:
  __version__ = version("course-schedule")
except PackageNotFoundError:
  __version__ = "unknown"
