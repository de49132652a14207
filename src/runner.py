from pathlib import Path
import shutil
import subprocess
import tempfile
from typing import Callable, Self

from pydantic import BaseModel

from config import Config, HarnessConfig
from src.exceptions import HarnessException
from src.redis.cases import CaseContext, TEST_CASES
from src.util.container_manager import cleanup_containers


CASE_EXCEPTIONS = (HarnessException, subprocess.SubprocessError)
""" Exceptions, which mark a test case as failed without stopping the suite. """


class TestResult(BaseModel):
    __test__ = False    # not a pytest test class

    name: str
    passed: bool
    message: str = ""


class TestSuite:
    """
    Runs selected test cases sequentially & aggregates their results.
    Must be used as a context manager: containers & temporary directories
    created during the run are removed on exit, regardless of failures.
    """
    __test__ = False

    def __init__(
            self,
            harness: HarnessConfig,
            config: Config,
            test_cases: dict[str, Callable[[CaseContext], None]] | None = None
        ):
        self.harness = harness
        self.config = config
        self.test_cases = test_cases if test_cases is not None else TEST_CASES
        self.results: list[TestResult] = []
        self._cid_dir: Path | None = None
        self._tmp_dir: Path | None = None

    def __enter__(self) -> Self:
        self._cid_dir = Path(tempfile.mkdtemp(prefix="redis_cid_"))
        self._tmp_dir = Path(tempfile.mkdtemp(prefix="redis_test_"))
        return self

    def __exit__(self, exc_type, exc_value, exc_tb) -> None:
        self.cleanup()

    @property
    def context(self) -> CaseContext:
        if self._cid_dir is None or self._tmp_dir is None:
            raise RuntimeError("Test suite must be entered before running tests.")
        return CaseContext(self.harness, self.config, self._cid_dir, self._tmp_dir)

    def cleanup(self) -> None:
        """ Removes created containers, CID files & temporary directories. """
        try:
            if self._cid_dir is not None:
                cleanup_containers(self._cid_dir, self.harness.debug)
                self._cid_dir = None
        finally:
            if self._tmp_dir is not None:
                try:
                    shutil.rmtree(self._tmp_dir)
                except OSError as e:
                    print(f"Failed to remove temporary directory {self._tmp_dir}: {e}")
                self._tmp_dir = None

    def run_test(self, name: str) -> TestResult:
        """ Runs a single test case & converts its failure into a result. """
        print(f"Running test {name} for {self.harness.image_name}")
        try:
            self.test_cases[name](self.context)
            result = TestResult(name=name, passed=True)
        except CASE_EXCEPTIONS as e:
            print(f"  Test {name} failed: {e}")
            result = TestResult(name=name, passed=False, message=str(e))

        self.results.append(result)
        return result

    def run(self) -> bool:
        """
        Runs selected test cases (all cases, if none were selected).
        Stops after the first failure, if `fail_quickly` is enabled.
        Returns True, if all executed cases passed.
        """
        for name in self.harness.selected_tests:
            result = self.run_test(name)
            if not result.passed and self.harness.fail_quickly:
                print("Fail quickly is enabled, skipping remaining tests.")
                break

        return self.passed

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results)

    def summary(self) -> str:
        image = self.harness.image_name
        header = f"Tests were run for image {image} (OS: {self.harness.os})"
        lines = [header, "SUMMARY:"]
        for result in self.results:
            status = "PASSED" if result.passed else "FAILED"
            lines.append(f"   [{status}] for '{result.name}'")

        lines.append("Tests for {} {}.".format(image, "succeeded" if self.passed else "failed"))
        return "\n".join(lines)
