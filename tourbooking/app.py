# module tourbooking.app
from tourbooking.app_setup.factory import create_app

app = create_app()
