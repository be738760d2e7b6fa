"""Allows running the build system with python -m mlm_build"""
from .main import main

main()
