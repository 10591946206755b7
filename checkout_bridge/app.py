# module checkout_bridge.app
from checkout_bridge.app_setup.factory import create_app

# App globale
app = create_app()
