import sys

from telegram_playground_bots import main

if __name__ == "__main__":
    sys.exit(main())
