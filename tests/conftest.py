import os, sys, pytest
# Ensure project root is on path so 'portal' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from portal import create_app, get_db
from portal.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import portal.models.audit  # noqa: F401
import portal.models.product  # noqa: F401
import portal.models.order  # noqa: F401
import portal.models.meeting  # noqa: F401
import portal.models.market_report  # noqa: F401
import portal.models.payment  # noqa: F401
import portal.models.news  # noqa: F401
import portal.models.invoice_delivery  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'DATABASE_URL': 'sqlite+pysqlite:///:memory:', 'TESTING': True})
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
