from clurb.domains.reading.debounce import ProgressDebouncer
from clurb.domains.reading.entities import ReadingProgress
from clurb.domains.reading.schemas import ProgressUpdate, ProgressResponse

__all__ = ["ProgressDebouncer", "ReadingProgress", "ProgressUpdate", "ProgressResponse"]
