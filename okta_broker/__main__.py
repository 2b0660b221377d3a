from okta_broker.cli import main

main()
