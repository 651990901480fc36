"""Run helm-deploy as a module: `python -m helm_deploy`."""

from helm_deploy.tool.helm_deploy import main

if __name__ == "__main__":
    main()
