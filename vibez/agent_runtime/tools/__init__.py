"""Workspace-scoped tools exposed to the coding agent.

- **files**: read / write / list / delete
- **scripts**: run_node / run_python through the process sandbox
- **git**: git_config / git_clone / git_command
- **approval**: request_approval through the approval gate
- **registry**: dispatch table and error-to-result translation
"""
