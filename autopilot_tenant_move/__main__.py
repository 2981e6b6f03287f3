from autopilot_tenant_move.cli import main

main()
