from rich.pretty import pprint

from sprig import *

app = Command("app", "demo application", version="1.0.0")
app.add_option("-d, --debug", "enable debug output", global_=True)
app.add_env_var("APP_PORT <port:number>", "default listen port", global_=True)

serve = app.add_command("serve, s <host:string> [port:number]", "start the server")
serve.add_option("-w, --workers <count:number>", "worker processes", default=1)
serve.set_action(lambda options, host, port=8080: pprint((options, host, port)))


if __name__ == '__main__':
    pprint(app.parse())
