"""Allow ``python -m repo_ranker``."""

from .cli import main

if __name__ == "__main__":
    main()
