import logging

MAX_LOG_LENGTH = 4000


def split_message(message: str, max_length: int = MAX_LOG_LENGTH):
    """
    Split a log message on newlines, then cut each line into pieces of at
    most max_length characters. Empty lines are kept so stack traces keep
    their shape.
    """
    chunks = []
    for line in message.split("\n"):
        if not line:
            chunks.append("")
            continue
        for start in range(0, len(line), max_length):
            chunks.append(line[start:start + max_length])
    return chunks


class ChunkedStreamHandler(logging.StreamHandler):
    """StreamHandler that writes long records as several bounded lines."""

    max_length = MAX_LOG_LENGTH

    def emit(self, record):
        try:
            stream = self.stream
            for chunk in split_message(self.format(record), self.max_length):
                stream.write(chunk + self.terminator)
            self.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)
