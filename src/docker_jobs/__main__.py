from docker_jobs.cli import app

app()
