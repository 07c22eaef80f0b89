import asyncio
import inspect
import os
import sys
import tempfile
from pathlib import Path

# Configure the environment before any imports that might initialize runtime
_test_tmp_dir = tempfile.mkdtemp(prefix="chirpy_test_")
Path(_test_tmp_dir, "index.html").write_text(
    "<html><body><h1>Welcome to Chirpy</h1></body></html>"
)
os.environ.setdefault("FILESERVER_ROOT", _test_tmp_dir)
os.environ.setdefault("TEST_MODE", "true")
os.environ.setdefault("USE_MEMORY_STORE", "true")
os.environ.setdefault("PLATFORM", "dev")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("POLKA_KEY", "f271c81ff7084ee5b99a5091b42d486e")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from chirpy.service.runtime import reset_runtime_for_tests  # noqa: E402


@pytest.fixture(autouse=True)
def reset_runtime_state():
    reset_runtime_for_tests()
    yield
    reset_runtime_for_tests()


@pytest.fixture
def polka_key():
    return os.environ["POLKA_KEY"]


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")
