import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.db.models.functions.comparison


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Friendship',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('addressee', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='received_friend_requests', to=settings.AUTH_USER_MODEL)),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sent_friend_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'friendships',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['addressee', 'status'], name='friendships_addr_status_idx'),
                    models.Index(fields=['requester', 'status'], name='friendships_req_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        django.db.models.functions.comparison.Least('requester', 'addressee'),
                        django.db.models.functions.comparison.Greatest('requester', 'addressee'),
                        name='unique_friendship_pair',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('requester', models.F('addressee')), _negated=True),
                        name='friendship_no_self_relation',
                    ),
                ],
            },
        ),
    ]
