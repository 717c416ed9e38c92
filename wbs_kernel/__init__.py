"""
WBS Kernel

The computational core of the project dashboard:
- Hierarchical work breakdown with bottom-up progress rollup
- Promote/demote between fixed depth levels
- Calendar-aware schedule analytics
- Contiguous per-project code allocation
"""

__version__ = "0.1.0"
