"""Package entry point for ``python -m caption_qa``.

RULES:
- This file must exist for ``python -m caption_qa`` to work
- The CLI's exit code becomes the process exit status
"""

import sys

if __name__ == "__main__":
    from caption_qa.cli import main
    sys.exit(main())
