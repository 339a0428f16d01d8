"""testcase-sync: test-case notation, step markup, patch building and
three-way conflict reconciliation for work-item tracker test cases."""

__version__ = "0.1.0"
