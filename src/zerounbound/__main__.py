"""Run the deploy API: python -m zerounbound"""

from zerounbound.main import main

if __name__ == "__main__":
    main()
