#!/usr/bin/env python3
"""ALM Defect - CLI 진입점.

사용법:
    python main.py domains
    python main.py --intostatus Closed delivery < release.yml
    python main.py --domain D --project P --intostatus Closed update 4711 4712

자세한 옵션은 `python main.py --help` 참고.
"""

from alm_defect.cli import main

if __name__ == "__main__":
    main()
