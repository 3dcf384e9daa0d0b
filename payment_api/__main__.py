from payment_api.main import run

run()
