"""
Registration Service - Team registration ledger

Responsibilities:
- Validate a group's secret code before registration
- Atomically claim a group and a project title while creating the team
- Admin seeding of groups and titles, team listings
- Live ledger announcements for the admin dashboard
"""
