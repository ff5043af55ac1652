"""``python -m jobspine``: the same CLI as the ``jobspine`` script.

Detached job processes re-enter the framework through this module.
"""

from jobspine.cli.app import app

if __name__ == "__main__":
    app(prog_name="jobspine")
