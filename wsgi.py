from upvote import create_app

app = create_app()
