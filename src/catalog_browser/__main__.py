"""Allow ``python -m catalog_browser``."""

from catalog_browser.cli import main

if __name__ == "__main__":
    main()
