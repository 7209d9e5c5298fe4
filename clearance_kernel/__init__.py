"""
Clearance Kernel

The approval-routing core of the admission clearance pipeline:
- Closed, typed form kinds with gated submission
- Dual, approval-set and single-approval topologies
- Department-scoped pending queues for staff
- Clearance completion tracking with best-effort notification and audit
"""

__version__ = "0.1.0"
