import os
from waitress import serve
from byod_asset_manager import create_app
from byod_asset_manager.services.employees import seed_super_admin
from byod_asset_manager.store import EntityStore

app = create_app()

# Seed the first administrator
with app.app_context():
    seed_super_admin(EntityStore(),
                     os.environ.get('ADMIN_EMAIL') or 'admin@company.com',
                     os.environ.get('ADMIN_PASSWORD') or 'change-me-now')

if __name__ == '__main__':
    serve(app, host=os.environ.get('HOST') or '0.0.0.0', port=int(os.environ.get('PORT') or 5000))
