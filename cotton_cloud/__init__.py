# Cotton Cloud AI Service
__version__ = "1.3.0"
