"""Development server pieces: events, migration status, compilation and process supervisors."""