"""Run the API server: python -m astrobot"""

from astrobot.app import main

main()
