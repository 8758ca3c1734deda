import os
import sys

# the modules live flat at the repository root
sys.path.insert (0, os.path.dirname (os.path.dirname (os.path.abspath (__file__))))
