"""The churchcheckin.view namespace."""

import pathlib


CSS_FOLDER = pathlib.Path(__file__).parent / "css"
