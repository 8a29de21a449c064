"""
Routers module - API endpoint handlers organized by feature.

- auth: credentials sign-in, open registration, password change
- google_auth: "Sign in with Google"
- invites: invite verification and invite-based registration
- users: the signed-in user's profile
- admin: user management and invite issuance (admins only)
- devices: claim workflow, device config, farm assignment, readings
- farms: farm grouping
- iot: device-facing registration and telemetry uploads
- dashboard: feeds for the dashboard cards, charts and map
"""
