"""Print the per-user Jupyter data directory of the running interpreter.

Prints nothing when user site-packages are disabled.
"""

import os
import site

if site.ENABLE_USER_SITE:
    print(os.path.join(site.getuserbase(), "share", "jupyter"))
