import os


def write_pid(path):
    """
    Write the current process id to ``path``.

    Args:
        path (str): Target file. Nothing is written when the path is empty.

    Returns:
        int or None: The written process id, or None when skipped.
    """
    if not path:
        return None

    pid = os.getpid()
    with open(path, "w") as f:
        f.write(str(pid))
    return pid
