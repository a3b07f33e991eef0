"""HTTP binding for the payroll hours engine."""
