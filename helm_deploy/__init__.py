"""
helm-deploy installs, upgrades, deletes or pushes a helm chart from a CI job.

The main steps of a run are:
  - Parse and validate the action inputs (`inputs`, `validate`)
  - Resolve the chart to a local directory or a remote reference (`chart`)
  - Write transient helm repository and registry config files (`registry`)
  - Render value files and run the helm commands in order (`values`, `deploy`)
  - Report the deployment status (`status`)
"""

__all__ = [
    "chart",
    "config",
    "deploy",
    "exceptions",
    "helm",
    "inputs",
    "registry",
    "status",
    "validate",
    "values",
]
