"""The applicant pipeline: candidates apply to jobs, HR reviews them."""
