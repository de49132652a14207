import os


def run_pytest_tests(file: str | os.PathLike) -> int:
    """Runs pytest tests in the provided `file` and returns the exit status of pytest."""
    return os.system(f'pytest "{os.path.abspath(file)}" -v')
