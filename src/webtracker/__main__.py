# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Allow ``python -m webtracker``."""

from .cli.main import main

if __name__ == "__main__":
    main()
