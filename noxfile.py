import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]

LAYERS = ["domain", "application", "integration", "bdd"]


def _install(session: nox.Session) -> None:
    # Only the test extra: the default providers are in-memory, so no database driver
    session.run("poetry", "install", "--extras", "test", external=True)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run the whole storefront suite."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
@nox.parametrize("layer", LAYERS)
def tests_layer(session: nox.Session, layer: str) -> None:
    """Run one test layer, selected by the marker its directory receives."""
    _install(session)
    session.run("pytest", "-m", layer, *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_fast(session: nox.Session) -> None:
    """Skip the threaded and HTTP-level tests."""
    _install(session)
    session.run("pytest", "-m", "not slow", *session.posargs)
