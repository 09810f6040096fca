"""Allow ``python -m zaptasks``."""

from zaptasks.main import main

main()
