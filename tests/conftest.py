# tests/conftest.py
"""
Shared fixtures: sample Hansl scripts and a ``lint`` helper that runs the
default checkers over a snippet with a given configuration.
"""

import logging

import pytest

from hansl_lint.checkers import CheckerRunner
from hansl_lint.config import LintConfig


CLEAN_SCRIPT = """\
/* Return the mean of a series. */
function scalar series_mean(series y)
    scalar total = sum(y)
    return total / nobs(y)
end function

# Load the data
open data4-1
series log_price = log(price)
ols price const sqft  # baseline model
scalar n_obs = $nobs
loop i = 1..3
    print i
endloop
"""

MESSY_SCRIPT = """\
function scalar MeanOf (series y)
scalar s=sum(y)
    return s/nobs(y) #mean
end function
matrix m = {1,2}
"""

FOREIGN_SCRIPT = """\
foreign language=R
  x <- c(1,2)
  print("unterminated
end foreign
scalar done = 1
"""

STYLE_GUIDE_MD = """\
# Spacing

Put spaces around assignment.

**Recommended:**

```hansl
scalar x = 1
```

**Not recommended:**

```hansl
scalar x=1
```

Plain prose sample, never linted:

```python
x=1
```
"""


@pytest.fixture
def lint():
    """Lint *text* as ``sample.inp``; keyword arguments go to ``LintConfig``."""
    def _lint(text, filename="sample.inp", **options):
        runner = CheckerRunner(config=LintConfig(**options))
        return runner.run_text(text, filename).diagnostics
    return _lint


@pytest.fixture
def codes(lint):
    """Rule codes reported for *text*."""
    def _codes(text, filename="sample.inp", **options):
        return [d.code for d in lint(text, filename, **options)]
    return _codes


@pytest.fixture
def clean_script():
    return CLEAN_SCRIPT


@pytest.fixture
def messy_script():
    return MESSY_SCRIPT


@pytest.fixture
def foreign_script():
    return FOREIGN_SCRIPT


@pytest.fixture
def style_guide_md():
    return STYLE_GUIDE_MD


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep user configuration and report env vars out of every test."""
    for var in ("HANSL_LINT_CONFIG", "HANSL_LINT_SARIF", "HANSL_LINT_HTML",
                "HANSL_LINT_HTML_TEMPLATE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.chdir(tmp_path)
    yield
    logger = logging.getLogger("hansl_lint")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
