# CRUD modules are plain functions over a Session; none of them commit except
# notification creation, so services control the transaction boundary.
from app.crud import admin, agency, escort, invitation, membership, notification, pricing, user, verification
