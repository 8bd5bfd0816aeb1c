#!/usr/bin/env python3
"""
Development tasks for entflow: clean, format, lint and test.

    python dev_tasks.py test --db postgresql+asyncpg://localhost/entflow_test
"""

import os
import shutil
import subprocess
import sys

SOURCES = ["entflow", "tests"]


def run(*args, check=True):
    print("Running:", " ".join(args))
    return subprocess.run(args, check=check).returncode == 0


def clean():
    for path in ["build", "dist", ".pytest_cache", ".mypy_cache", "htmlcov", ".coverage"]:
        if os.path.isdir(path):
            shutil.rmtree(path, ignore_errors=True)
        elif os.path.exists(path):
            os.remove(path)
    for root, dirs, _files in os.walk("."):
        for d in list(dirs):
            if d == "__pycache__" or d.endswith(".egg-info"):
                shutil.rmtree(os.path.join(root, d), ignore_errors=True)
                dirs.remove(d)


def format_code():
    run("isort", *SOURCES)
    run("black", *SOURCES)


def lint():
    results = [
        run("mypy", "entflow", check=False),
        run("flake8", "--max-line-length=130", *SOURCES, check=False),
    ]
    if not all(results):
        sys.exit("Linting failed.")


def test(argv):
    # ``--db URL`` runs the suite against another database instead of in-memory sqlite
    env = dict(os.environ)
    if "--db" in argv:
        i = argv.index("--db")
        env["ENTFLOW_TEST_DATABASE_URL"] = argv[i + 1]
        argv = argv[:i] + argv[i + 2:]
    cmd = [sys.executable, "-m", "pytest", "--cov=entflow", "--cov-report=term-missing", *argv]
    print("Running:", " ".join(cmd))
    sys.exit(subprocess.run(cmd, env=env).returncode)


def main():
    if len(sys.argv) < 2:
        sys.exit("Usage: python dev_tasks.py {clean,format,lint,test} [pytest args]")
    command, rest = sys.argv[1], sys.argv[2:]
    if command == "test":
        test(rest)
    elif command == "clean":
        clean()
    elif command == "format":
        format_code()
    elif command == "lint":
        lint()
    else:
        sys.exit(f"Unknown command: {command}")


if __name__ == "__main__":
    main()
