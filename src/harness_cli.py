from pathlib import Path
import typer

if __name__ == "__main__":
    import sys
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from pydantic import ValidationError

from config import load_config, HarnessConfig, TEST_NAMES
from src.runner import TestSuite


app = typer.Typer(pretty_exceptions_enable=False)
""" CLI utility for testing a Redis container image. """


@app.command(help="Runs test cases against the image and prints a summary.")
def run(
    image_name: str = typer.Option("", envvar="IMAGE_NAME", help="Image under test."),
    version: str = typer.Option("", envvar="VERSION", help="Expected Redis version."),
    os: str = typer.Option("", envvar="OS", help="Base OS of the image."),
    tests: str = typer.Option("", envvar="TESTS", help="Space separated test names (all by default)."),
    fail_quickly: bool = typer.Option(False, envvar="FAIL_QUICKLY", help="Stop after the first failed test."),
    debug: bool = typer.Option(False, envvar="DEBUG", help="Print executed commands & container details.")
):
    try:
        harness = HarnessConfig(
            image_name=image_name,
            version=version,
            os=os,
            tests=tests,
            fail_quickly=fail_quickly,
            debug=debug
        )
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}")
        raise typer.Exit(code=1)

    config = load_config()

    with TestSuite(harness, config) as suite:
        suite.run()

    print(suite.summary())
    raise typer.Exit(code=0 if suite.passed else 1)


@app.command(name="list", help="Lists available test cases.")
def list_tests():
    for name in TEST_NAMES:
        print(name)


if __name__ == "__main__":
    app()
